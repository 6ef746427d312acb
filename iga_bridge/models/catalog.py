from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class CatalogItem:
    """
    A searchable unit of access in Ping IGA (application, entitlement or role).
    Rebuilt on every search, never persisted.
    """
    id: str
    label: str
    description: Optional[str] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Connection settings for the Ping IGA API, resolved from the secret store.
    Path overrides are relative to base_url; token_url is absolute.
    """
    base_url: str
    client_id: str
    client_secret: str
    token_url: Optional[str] = None
    search_path: Optional[str] = None
    request_path: Optional[str] = None
    request_status_path: Optional[str] = None

    def __repr__(self):
        return f"ConnectionConfig(base_url={self.base_url}, client_id={self.client_id}, client_secret=***REDACTED***)"


@dataclass
class CachedToken:
    value: str                # "<token_type> <access_token>"
    expires_at_ms: float

    def __repr__(self):
        return f"CachedToken(value=***REDACTED***, expires_at_ms={self.expires_at_ms})"
