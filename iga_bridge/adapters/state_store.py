import boto3
import logging
from typing import List
from botocore.exceptions import ClientError
from iga_bridge.models.request import AccessRequestRecord

logger = logging.getLogger(__name__)

class StateStoreError(Exception):
    """Raised when the requests table cannot be read or written."""
    pass

class StateStore:
    """
    The 'Memory' of the system.
    Adapter for the DynamoDB requests table. Primary key: id (the IGA request ID).
    """
    def __init__(self, table_name: str, region_name: str = None, table=None):
        # Dependency Injection allows us to pass a fake table during testing
        if table is None:
            dynamodb = boto3.resource("dynamodb", region_name=region_name)
            table = dynamodb.Table(table_name)
        self.table = table
        self.table_name = table_name

    def __repr__(self):
        return f"StateStore(table={self.table_name})"

    def put(self, record: AccessRequestRecord):
        """
        Writes a request record.
        Idempotent: If id exists, it overwrites (used for status updates).
        """
        try:
            self.table.put_item(Item=record.to_item())
        except ClientError as e:
            raise StateStoreError(f"Failed to save request {record.id}: {e}")

    def query(self, limit: int = 200) -> List[AccessRequestRecord]:
        """
        Returns up to `limit` records. There is no server-side requester filter;
        callers filter what they need.
        """
        try:
            response = self.table.scan(Limit=limit)
        except ClientError as e:
            raise StateStoreError(f"Failed to query requests table: {e}")

        records = []
        for item in response.get("Items", []):
            if not item.get("id"):
                logger.warning("Skipping request item without an id")
                continue
            records.append(AccessRequestRecord.from_item(item))
        return records
