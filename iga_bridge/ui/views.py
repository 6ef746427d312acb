from __future__ import annotations

import datetime
from typing import Any, Dict, List, Optional, Sequence

from iga_bridge.models.catalog import CatalogItem
from iga_bridge.models.request import AccessRequestRecord
from iga_bridge.models.form_state import (
    CATALOG_SELECT_ACTION_ID,
    CATALOG_SELECT_BLOCK_ID,
    JUSTIFICATION_ACTION_ID,
    JUSTIFICATION_BLOCK_ID,
    REQUEST_FOR_ACTION_ID,
    REQUEST_FOR_BLOCK_ID,
    REQUESTED_FOR_ACTION_ID,
    REQUESTED_FOR_BLOCK_ID,
    SEARCH_INPUT_ACTION_ID,
    SEARCH_INPUT_BLOCK_ID,
)

REQUEST_MODAL_CALLBACK_ID = "catalog_request_modal"
VIEW_REQUEST_ACTION_ID = "view_request_in_iga"

# Slack hard limits
MAX_SELECT_OPTIONS = 100
MAX_OPTION_TEXT = 75


# ---------- Helpers ----------

def _plain(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text}


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def format_date(iso: str) -> str:
    """'2026-10-17T15:04:00Z' -> 'Oct 17, 2026, 03:04 PM'. Unparsable values are shown as-is."""
    if not iso:
        return "-"
    text = iso.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return iso
    return parsed.strftime("%b %d, %Y, %I:%M %p")


def _catalog_option(item: CatalogItem) -> Dict[str, Any]:
    label = f"{item.label} ({item.type})" if item.type else item.label
    option = {"text": _plain(truncate(label, MAX_OPTION_TEXT)), "value": item.id}
    if item.description:
        option["description"] = _plain(truncate(item.description, MAX_OPTION_TEXT))
    return option


_REQUEST_FOR_LABELS = {"self": "Myself", "other": "Someone else"}


def _request_for_option(value: str) -> Dict[str, Any]:
    return {"text": _plain(_REQUEST_FOR_LABELS[value]), "value": value}


# ---------- Modal ----------

def build_request_modal(
    items: Sequence[CatalogItem],
    *,
    search_query: str = "",
    selected_item_id: Optional[str] = None,
    request_for: str = "self",
    requested_for_user: Optional[str] = None,
    justification: Optional[str] = None,
) -> Dict[str, Any]:
    """Builds the 'Request Access' modal, preserving whatever the user already filled in."""
    request_for = "other" if request_for == "other" else "self"
    options = [_catalog_option(item) for item in list(items)[:MAX_SELECT_OPTIONS]]

    search_element = {
        "type": "plain_text_input",
        "action_id": SEARCH_INPUT_ACTION_ID,
        "placeholder": _plain("Search for apps, roles, or entitlements"),
    }
    if search_query:
        search_element["initial_value"] = search_query

    catalog_element = {
        "type": "static_select",
        "action_id": CATALOG_SELECT_ACTION_ID,
        "placeholder": _plain("Select an item" if options else "Type a search term to see results"),
        "options": options,
    }
    initial = next((o for o in options if o["value"] == selected_item_id), None) if selected_item_id else None
    if initial:
        catalog_element["initial_option"] = initial

    recipient_element = {"type": "users_select", "action_id": REQUESTED_FOR_ACTION_ID}
    if requested_for_user:
        recipient_element["initial_user"] = requested_for_user

    justification_element = {
        "type": "plain_text_input",
        "action_id": JUSTIFICATION_ACTION_ID,
        "multiline": True,
    }
    if justification:
        justification_element["initial_value"] = justification

    return {
        "type": "modal",
        "callback_id": REQUEST_MODAL_CALLBACK_ID,
        "title": _plain("Request Access"),
        "submit": _plain("Request"),
        "close": _plain("Cancel"),
        "blocks": [
            {
                "type": "input",
                "block_id": SEARCH_INPUT_BLOCK_ID,
                "dispatch_action": True,
                "optional": True,
                "label": _plain("Search catalog"),
                "element": search_element,
            },
            {
                "type": "input",
                "block_id": CATALOG_SELECT_BLOCK_ID,
                "label": _plain("Catalog item"),
                "element": catalog_element,
            },
            {
                "type": "input",
                "block_id": REQUEST_FOR_BLOCK_ID,
                "dispatch_action": True,
                "label": _plain("Request for"),
                "element": {
                    "type": "static_select",
                    "action_id": REQUEST_FOR_ACTION_ID,
                    "initial_option": _request_for_option(request_for),
                    "options": [_request_for_option("self"), _request_for_option("other")],
                },
            },
            {
                "type": "input",
                "block_id": REQUESTED_FOR_BLOCK_ID,
                "optional": request_for == "self",
                "label": _plain("Who should receive access?"),
                "element": recipient_element,
                "hint": _plain(
                    "We'll default to you if left blank"
                    if request_for == "self"
                    else "Select the teammate who should receive access"
                ),
            },
            {
                "type": "input",
                "block_id": JUSTIFICATION_BLOCK_ID,
                "optional": True,
                "label": _plain("Business justification (sent to Ping IGA)"),
                "element": justification_element,
                "hint": _plain("Sensitive details are not stored in Slack"),
            },
        ],
    }


# ---------- App Home ----------

def build_app_home_view(requests: Sequence[AccessRequestRecord]) -> Dict[str, Any]:
    blocks: List[Dict[str, Any]] = [
        {"type": "header", "text": _plain("Ping IGA requests")},
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": "Search the catalog with */iga* or the Ping IGA shortcuts. "
                        "Requests and statuses refresh whenever you open this page.",
            },
        },
    ]

    if not requests:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "No recent requests yet. Use */iga* to get started!"},
        })

    for request in requests:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*{request.catalog_item_label}*\n"
                        f"Status: *{request.status}*\n"
                        f"Requested: {format_date(request.requested_at)}",
            },
            "accessory": {
                "type": "button",
                "action_id": VIEW_REQUEST_ACTION_ID,
                "text": _plain("Open in Ping IGA"),
                "value": request.id,
            },
        })
        blocks.append({"type": "divider"})

    return {"type": "home", "blocks": blocks}
