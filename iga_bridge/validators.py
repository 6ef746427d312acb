"""
Input validation utilities for values that arrive from Slack payloads.
Prevents injection attacks, oversized payloads, and malformed identifiers.
"""
import re
from typing import Optional

MAX_SEARCH_QUERY_LENGTH = 200
MAX_JUSTIFICATION_LENGTH = 3000


def validate_slack_user_id(user_id: str) -> str:
    """
    Validates Slack user ID format.

    Slack user IDs start with U (standard) or W (Enterprise Grid),
    followed by 8-12 alphanumeric characters.

    Args:
        user_id: Slack user ID (e.g., U1234ABCD)

    Returns:
        Validated user ID

    Raises:
        ValueError: If user ID format is invalid
    """
    if not user_id or not re.match(r'^[UW][A-Z0-9]{8,12}$', user_id):
        raise ValueError(f"Invalid Slack user ID format: {user_id}")

    return user_id


def validate_search_query(query: str) -> str:
    """
    Normalizes a catalog search term.

    Args:
        query: Free text typed by the user (may be None)

    Returns:
        Trimmed query, empty string when nothing was typed

    Raises:
        ValueError: If the query is longer than MAX_SEARCH_QUERY_LENGTH
    """
    query = (query or "").strip()

    if len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise ValueError(f"Search term exceeds maximum of {MAX_SEARCH_QUERY_LENGTH} characters, got: {len(query)}")

    return query


def validate_justification(justification: Optional[str]) -> Optional[str]:
    """
    Validates the business justification sent to Ping IGA.

    Raises:
        ValueError: If the justification is too long
    """
    if justification is None:
        return None

    if len(justification) > MAX_JUSTIFICATION_LENGTH:
        raise ValueError(f"Justification exceeds maximum of {MAX_JUSTIFICATION_LENGTH} characters")

    return justification.strip() or None


def validate_home_event(event: dict) -> str:
    """
    Validates an App Home refresh ticket read from SQS.

    Returns:
        The Slack user ID to refresh

    Raises:
        ValueError: If the payload is not a dict or carries no valid user ID
    """
    if not isinstance(event, dict):
        raise ValueError(f"Home event must be an object, got: {type(event).__name__}")

    return validate_slack_user_id(event.get("user_id"))
