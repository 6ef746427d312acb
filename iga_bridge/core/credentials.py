import logging
from typing import Optional

from iga_bridge.models.catalog import ConnectionConfig

logger = logging.getLogger(__name__)

REQUIRED_SECRETS = ("PING_IGA_BASE_URL", "PING_IGA_CLIENT_ID", "PING_IGA_CLIENT_SECRET")
OPTIONAL_SECRETS = (
    "PING_IGA_TOKEN_URL",
    "PING_IGA_SEARCH_PATH",
    "PING_IGA_REQUEST_PATH",
    "PING_IGA_REQUEST_STATUS_PATH",
)

class CredentialProvider:
    """
    Resolves the Ping IGA connection settings from the secret store.

    A missing secret is a recognized mode (demo mode), not an error: resolve()
    returns None and callers fall back to built-in behavior. A successful
    resolution is cached for the life of the provider.
    """
    def __init__(self, secret_store):
        self.secrets = secret_store
        self._config: Optional[ConnectionConfig] = None

    def resolve(self) -> Optional[ConnectionConfig]:
        if self._config:
            return self._config

        try:
            base_url, client_id, client_secret = (self.secrets.get(name) for name in REQUIRED_SECRETS)
            if not base_url or not client_id or not client_secret:
                logger.warning("Missing Ping IGA secrets; falling back to demo mode")
                return None

            token_url, search_path, request_path, status_path = (
                self.secrets.get(name) for name in OPTIONAL_SECRETS
            )
        except Exception as e:
            logger.error(f"Unable to load Ping IGA configuration: {type(e).__name__}: {e}")
            return None

        self._config = ConnectionConfig(
            base_url=base_url,
            client_id=client_id,
            client_secret=client_secret,
            token_url=token_url,
            search_path=search_path,
            request_path=request_path,
            request_status_path=status_path,
        )
        logger.info("Ping IGA configuration resolved")
        return self._config
