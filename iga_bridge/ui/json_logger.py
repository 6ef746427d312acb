import json
import logging
import datetime
from dataclasses import asdict
from iga_bridge.models.request import AccessRequestRecord

audit_logger = logging.getLogger("iga_bridge.audit")

SCHEMA_VERSION = "1.0"

def to_serializable_dict(record: AccessRequestRecord) -> dict:
    """
    Helper to convert a request record to a dictionary.
    The justification is reduced to a presence flag: it may hold sensitive details.
    """
    data = asdict(record)
    data["justification"] = bool(data.get("justification"))
    return data

def log_audit_event(event_type: str, record: AccessRequestRecord, **details) -> dict:
    """
    Emits one JSON line describing a state change (request_submitted, status_changed).
    Lambda ships stdout to CloudWatch, so the log line is the durable artifact.
    Returns the entry that was logged.
    """
    log_entry = {
        "schema_version": SCHEMA_VERSION,
        "event": event_type,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "correlation_id": record.id,
        "request": to_serializable_dict(record),
    }
    if details:
        log_entry["details"] = details

    audit_logger.info(json.dumps(log_entry, sort_keys=True))
    return log_entry
