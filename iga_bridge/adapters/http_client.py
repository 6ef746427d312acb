import urllib.request
import urllib.error
import json
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

@dataclass
class HttpResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


def send_request(method: str, url: str, headers: Optional[Dict[str, str]] = None,
                 data: Optional[bytes] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> HttpResponse:
    """
    Performs a single HTTPS call and returns status + decoded body.

    Non-2xx answers are returned, not raised, so callers can decide how to degrade.
    Network failures (DNS, refused connection, timeout) raise urllib.error.URLError.
    """
    # Validate URL scheme for security (Bandit B310)
    if not url.startswith("https://"):
        raise ValueError(f"Invalid URL scheme. Only HTTPS is allowed: {url}")

    req = urllib.request.Request(url, data=data, headers=headers or {}, method=method)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:  # nosec B310
            return HttpResponse(status=response.status, body=response.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="replace") if e.fp else ""
        logger.debug(f"HTTP {e.code} from {method} {url}")
        return HttpResponse(status=e.code, body=body)
