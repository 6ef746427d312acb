from dataclasses import dataclass, asdict, replace
from typing import Optional, Dict, Any

@dataclass
class AccessRequestRecord:
    """
    Represents an access request persisted in the requests table.
    Attribute names mirror the DynamoDB item written by StateStore.

    Attributes:
        id: The Ping IGA request ID (or a demo- ID when running unconfigured).
        requester_user_id: Slack user ID of the person who filed the request.
        requester_email: Email of the requester, if Slack exposed one.
        requested_for_user_id: Slack user ID of the person receiving access.
        catalog_item_id: IGA catalog item identifier.
        catalog_item_label: Human readable label of the catalog item.
        status: Last status observed from Ping IGA (PENDING until observed).
        justification: Optional business justification.
        requested_at: ISO 8601 timestamp of the submission.
        last_synced_at: ISO 8601 timestamp of the last status refresh.
    """
    id: str
    requester_user_id: str
    requested_for_user_id: str
    catalog_item_id: str
    catalog_item_label: str
    status: str = "PENDING"
    requester_email: Optional[str] = None
    justification: Optional[str] = None
    requested_at: str = ""
    last_synced_at: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        """Serializes the record, dropping empty optional attributes."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "AccessRequestRecord":
        return cls(
            id=str(item["id"]),
            requester_user_id=str(item.get("requester_user_id", "")),
            requested_for_user_id=str(item.get("requested_for_user_id", "")),
            catalog_item_id=str(item.get("catalog_item_id", "")),
            catalog_item_label=str(item.get("catalog_item_label", "")),
            status=str(item.get("status") or "PENDING"),
            requester_email=item.get("requester_email"),
            justification=item.get("justification"),
            requested_at=str(item.get("requested_at", "")),
            last_synced_at=item.get("last_synced_at"),
        )

    def with_changes(self, **changes) -> "AccessRequestRecord":
        return replace(self, **changes)


@dataclass
class CreateRequestPayload:
    """The body Ping IGA expects when a new access request is filed."""
    catalog_item_id: str
    catalog_item_label: str
    requested_for: str
    requested_by: str
    requester_email: Optional[str] = None
    justification: Optional[str] = None

    def to_wire(self) -> Dict[str, str]:
        body = {
            "catalogItemId": self.catalog_item_id,
            "catalogItemLabel": self.catalog_item_label,
            "requestedFor": self.requested_for,
            "requestedBy": self.requested_by,
            "requesterEmail": self.requester_email,
            "justification": self.justification,
        }
        return {k: v for k, v in body.items() if v is not None}


@dataclass
class SubmissionResult:
    request_id: str
    status: str = "PENDING"
