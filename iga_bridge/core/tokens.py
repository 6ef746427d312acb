import base64
import logging
import threading
import time
import urllib.parse
from typing import Optional, Callable
from urllib.parse import urljoin

from iga_bridge.adapters.http_client import send_request
from iga_bridge.models.catalog import CachedToken, ConnectionConfig

logger = logging.getLogger(__name__)

EXPIRY_MARGIN_MS = 30_000
DEFAULT_EXPIRES_IN_MS = 300_000
DEFAULT_TOKEN_PATH = "/as/token"

class AuthError(Exception):
    """Raised when the Ping IGA token endpoint refuses the client credentials."""
    def __init__(self, status_code: int):
        super().__init__(f"Unable to obtain Ping IGA access token: {status_code}")
        self.status_code = status_code

class TokenManager:
    """
    OAuth2 client-credentials token cache for the Ping IGA API.

    One instance per process. Refresh is single-flight: concurrent callers
    that find an expired token wait on the lock and reuse the token fetched
    by whoever got there first.
    """
    def __init__(self, transport: Callable = send_request, clock: Callable[[], float] = time.time):
        self.transport = transport
        self.clock = clock
        self._token: Optional[CachedToken] = None
        self._lock = threading.Lock()

    def __repr__(self):
        return "TokenManager(token=***REDACTED***)"

    def _now_ms(self) -> float:
        return self.clock() * 1000

    def _cached(self) -> Optional[str]:
        token = self._token
        if token and token.expires_at_ms > self._now_ms() + EXPIRY_MARGIN_MS:
            return token.value
        return None

    def get_token(self, config: ConnectionConfig) -> str:
        """
        Returns an Authorization header value ("Bearer abc...").

        Raises:
            AuthError: If the token endpoint answers with a non-2xx status
        """
        cached = self._cached()
        if cached:
            return cached

        with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._cached()
            if cached:
                return cached
            self._token = self._fetch_token(config)
            return self._token.value

    def invalidate(self) -> None:
        with self._lock:
            self._token = None

    def _fetch_token(self, config: ConnectionConfig) -> CachedToken:
        token_url = config.token_url or urljoin(config.base_url, DEFAULT_TOKEN_PATH)
        basic = base64.b64encode(f"{config.client_id}:{config.client_secret}".encode("utf-8")).decode("ascii")

        logger.info("Requesting Ping IGA access token (client_credentials)")
        response = self.transport(
            "POST",
            token_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": f"Basic {basic}",
            },
            data=urllib.parse.urlencode({"grant_type": "client_credentials"}).encode("utf-8"),
        )

        if not response.ok:
            logger.error(f"Ping IGA token request failed with HTTP {response.status}")
            raise AuthError(response.status)

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.error(f"Ping IGA token response was not a JSON object (HTTP {response.status})")
            raise AuthError(response.status)

        token_type = body.get("token_type") or "Bearer"
        expires_in = body.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            lifetime_ms = expires_in * 1000
        else:
            lifetime_ms = DEFAULT_EXPIRES_IN_MS

        return CachedToken(
            value=f"{token_type} {body.get('access_token', '')}".strip(),
            expires_at_ms=self._now_ms() + lifetime_ms,
        )
