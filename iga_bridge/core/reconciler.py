import datetime
import logging
import time
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from iga_bridge.models.request import AccessRequestRecord
from iga_bridge.ui.json_logger import log_audit_event

logger = logging.getLogger(__name__)

QUERY_LIMIT = 200
MAX_RESULTS = 25

def _iso_utc(epoch_seconds: float) -> str:
    return datetime.datetime.fromtimestamp(epoch_seconds, datetime.timezone.utc).isoformat()

def parse_timestamp(value: str) -> Optional[float]:
    """Parses an ISO 8601 timestamp to epoch seconds. Naive values are read as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.timestamp()

def _newest_first_key(record: AccessRequestRecord) -> Tuple[int, float]:
    # Unparsable dates go last; the sort is stable so they keep their order
    ts = parse_timestamp(record.requested_at)
    if ts is None:
        return (1, 0.0)
    return (0, -ts)

class StatusReconciler:
    """
    Refreshes a user's persisted requests against Ping IGA.

    Per-record failures are logged and the original record is carried
    forward. A failing record store query propagates to the caller.
    """
    def __init__(self, iga_client, state_store, notifier, clock: Callable[[], float] = time.time,
                 dedupe_max_size: int = 1000):
        self.iga = iga_client
        self.store = state_store
        self.notifier = notifier
        self.clock = clock
        # (request_id, status) pairs already announced by this process
        self._announced: OrderedDict[Tuple[str, str], None] = OrderedDict()
        self._dedupe_max_size = dedupe_max_size

    def reconcile(self, user_id: str) -> List[AccessRequestRecord]:
        records = [r for r in self.store.query(limit=QUERY_LIMIT) if r.requester_user_id == user_id]
        logger.info(f"Reconciling {len(records)} request(s) for {user_id}")

        refreshed = [self._refresh(record) for record in records]
        refreshed.sort(key=_newest_first_key)
        return refreshed[:MAX_RESULTS]

    def _refresh(self, record: AccessRequestRecord) -> AccessRequestRecord:
        try:
            status = self.iga.get_request_status(record.id)
            now = _iso_utc(self.clock())

            if status and status != record.status:
                updated = record.with_changes(status=status, last_synced_at=now)
                self.store.put(updated)
                log_audit_event("status_changed", updated, previous_status=record.status)
                self._notify(updated)
                return updated

            return record.with_changes(last_synced_at=now)

        except Exception as e:
            logger.error(f"Unable to refresh request status for {record.id}: {type(e).__name__}: {e}")
            return record

    def _notify(self, record: AccessRequestRecord) -> None:
        key = (record.id, record.status)
        if key in self._announced:
            logger.debug(f"Transition {record.id} -> {record.status} already announced")
            return

        self.notifier.send_direct_message(
            record.requester_user_id,
            f"Request *{record.catalog_item_label}* ({record.id}) is now *{record.status}*.",
        )

        if len(self._announced) >= self._dedupe_max_size:
            self._announced.pop(next(iter(self._announced)))
        self._announced[key] = None
