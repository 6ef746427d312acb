from dataclasses import dataclass
from typing import Optional, Dict, Any

# Block Kit ids shared by the modal builder and the state parser
SEARCH_INPUT_BLOCK_ID = "search_block"
SEARCH_INPUT_ACTION_ID = "search_query"
CATALOG_SELECT_BLOCK_ID = "catalog_selection"
CATALOG_SELECT_ACTION_ID = "catalog_select"
REQUEST_FOR_BLOCK_ID = "request_for"
REQUEST_FOR_ACTION_ID = "request_for_select"
REQUESTED_FOR_BLOCK_ID = "requested_for_user"
REQUESTED_FOR_ACTION_ID = "requested_for_select"
JUSTIFICATION_BLOCK_ID = "justification"
JUSTIFICATION_ACTION_ID = "justification_input"


@dataclass(frozen=True)
class FormState:
    """
    Typed snapshot of the request modal.
    Built once per Slack event from view.state.values.
    """
    search_query: str = ""
    selected_item_id: Optional[str] = None
    selected_item_label: Optional[str] = None
    request_for: str = "self"
    requested_for_user: Optional[str] = None
    justification: Optional[str] = None

    @property
    def is_for_other(self) -> bool:
        return self.request_for == "other"


def _element(values: Dict[str, Any], block_id: str, action_id: str) -> Dict[str, Any]:
    block = values.get(block_id) if isinstance(values, dict) else None
    if not isinstance(block, dict):
        return {}
    element = block.get(action_id)
    return element if isinstance(element, dict) else {}


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_request_for(value: Any) -> str:
    return "other" if value == "other" else "self"


def parse_view_state(values: Optional[Dict[str, Any]]) -> FormState:
    """
    Maps the raw, untyped Slack view state into a FormState.
    Missing blocks, nulls and unexpected shapes all degrade to defaults.
    """
    values = values or {}

    search = _element(values, SEARCH_INPUT_BLOCK_ID, SEARCH_INPUT_ACTION_ID).get("value")

    selected = _element(values, CATALOG_SELECT_BLOCK_ID, CATALOG_SELECT_ACTION_ID).get("selected_option")
    selected_id = None
    selected_label = None
    if isinstance(selected, dict):
        selected_id = _text_or_none(selected.get("value"))
        text = selected.get("text")
        if isinstance(text, dict):
            selected_label = _text_or_none(text.get("text"))

    request_for_option = _element(values, REQUEST_FOR_BLOCK_ID, REQUEST_FOR_ACTION_ID).get("selected_option")
    request_for_value = request_for_option.get("value") if isinstance(request_for_option, dict) else None

    return FormState(
        search_query=search if isinstance(search, str) else "",
        selected_item_id=selected_id,
        selected_item_label=selected_label,
        request_for=parse_request_for(request_for_value),
        requested_for_user=_text_or_none(
            _element(values, REQUESTED_FOR_BLOCK_ID, REQUESTED_FOR_ACTION_ID).get("selected_user")
        ),
        justification=_text_or_none(
            _element(values, JUSTIFICATION_BLOCK_ID, JUSTIFICATION_ACTION_ID).get("value")
        ),
    )
