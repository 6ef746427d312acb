import json
import logging
import urllib.parse
import uuid
from typing import Callable, List, Optional
from urllib.parse import urljoin

from iga_bridge.adapters.http_client import send_request
from iga_bridge.core.catalog import filter_fallback, first_present, normalize_items
from iga_bridge.core.credentials import CredentialProvider
from iga_bridge.core.tokens import TokenManager
from iga_bridge.models.catalog import CatalogItem, ConnectionConfig
from iga_bridge.models.request import CreateRequestPayload, SubmissionResult

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PATH = "/v1/catalog-items"
DEFAULT_REQUEST_PATH = "/v1/requests"
DEFAULT_STATUS_PATH = "/v1/requests/{id}"

class SubmissionError(Exception):
    """Raised when a configured Ping IGA backend fails to create a request."""
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

class PingIgaClient:
    """
    The 'Voice' of the system towards Ping IGA.
    Search and status lookups always degrade to something usable (fallback
    catalog, no status). Only request creation surfaces failures, because a
    silent failure there would tell the user access was requested when it was not.
    """
    def __init__(self, credentials: CredentialProvider, tokens: Optional[TokenManager] = None,
                 transport: Callable = send_request):
        self.credentials = credentials
        self.transport = transport
        self.tokens = tokens or TokenManager(transport=transport)

    def __repr__(self):
        return "PingIgaClient(token=***REDACTED***)"

    def _headers(self, config: ConnectionConfig) -> dict:
        return {
            "Authorization": self.tokens.get_token(config),
            "Content-Type": "application/json",
        }

    # --- READ METHODS ---

    def search_catalog(self, query: str) -> List[CatalogItem]:
        """Searches the catalog by free text. Never raises."""
        query = query or ""
        config = self.credentials.resolve()
        if not config:
            return filter_fallback(query)

        try:
            url = urljoin(config.base_url, config.search_path or DEFAULT_SEARCH_PATH)
            if query:
                separator = "&" if "?" in url else "?"
                url = f"{url}{separator}{urllib.parse.urlencode({'search': query})}"

            response = self.transport("GET", url, headers=self._headers(config))
            if not response.ok:
                logger.error(f"Ping IGA search failed: HTTP {response.status} {response.body}")
                return filter_fallback(query)

            body = response.json()
            items = normalize_items(body.get("items")) if isinstance(body, dict) else None
            if items is None:
                logger.warning("Ping IGA search returned an unrecognized payload; using fallback catalog")
                return filter_fallback(query)
            return items

        except Exception as e:
            logger.error(f"Ping IGA search error: {type(e).__name__}: {e}")
            return filter_fallback(query)

    def get_request_status(self, request_id: str) -> Optional[str]:
        """Returns the remote status, or None when no status is available."""
        config = self.credentials.resolve()
        if not config:
            return None

        try:
            url = urljoin(config.base_url, self._status_path(config, request_id))
            response = self.transport("GET", url, headers=self._headers(config))
            if not response.ok:
                logger.error(f"Ping IGA get request failed for {request_id}: HTTP {response.status} {response.body}")
                return None

            body = response.json()
            if not isinstance(body, dict):
                return None
            for key in ("status", "state"):
                if isinstance(body.get(key), str):
                    return body[key]
            return None

        except Exception as e:
            logger.error(f"Ping IGA status error for {request_id}: {type(e).__name__}: {e}")
            return None

    @staticmethod
    def _status_path(config: ConnectionConfig, request_id: str) -> str:
        escaped = urllib.parse.quote(request_id, safe="")
        template = config.request_status_path or DEFAULT_STATUS_PATH
        if "{id}" in template:
            return template.replace("{id}", escaped)
        return f"{template.rstrip('/')}/{escaped}"

    # --- WRITE METHODS ---

    def create_request(self, payload: CreateRequestPayload) -> SubmissionResult:
        """
        Files a new access request.

        Raises:
            AuthError: If the token exchange fails
            SubmissionError: If Ping IGA rejects the request or cannot be reached
        """
        config = self.credentials.resolve()
        if not config:
            request_id = f"demo-{uuid.uuid4()}"
            logger.info(f"Demo mode: synthesized request {request_id}")
            return SubmissionResult(request_id=request_id, status="PENDING")

        url = urljoin(config.base_url, config.request_path or DEFAULT_REQUEST_PATH)
        headers = self._headers(config)

        try:
            response = self.transport(
                "POST", url, headers=headers, data=json.dumps(payload.to_wire()).encode("utf-8")
            )
        except Exception as e:
            logger.error(f"Ping IGA create request error: {type(e).__name__}: {e}")
            raise SubmissionError("Unable to submit request to Ping IGA") from e

        if not response.ok:
            logger.error(f"Ping IGA create request failed: HTTP {response.status} {response.body}")
            raise SubmissionError(
                f"Ping IGA returned {response.status} when creating the request. {response.body}".strip(),
                status_code=response.status,
                body=response.body,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise SubmissionError("Ping IGA returned an unreadable response when creating the request") from e
        if not isinstance(body, dict):
            body = {}

        request_id = first_present(body, "id", "requestId")
        status = first_present(body, "status", "state")
        return SubmissionResult(
            request_id=str(request_id) if request_id is not None else str(uuid.uuid4()),
            status=str(status) if status is not None else "PENDING",
        )
