import datetime
import logging
from typing import Any, Dict, Optional

from iga_bridge.adapters.ping_iga import PingIgaClient, SubmissionError
from iga_bridge.adapters.slack_adapter import SlackAdapter, SlackAPIError
from iga_bridge.adapters.state_store import StateStore
from iga_bridge.core.tokens import AuthError
from iga_bridge.models.form_state import (
    CATALOG_SELECT_BLOCK_ID,
    JUSTIFICATION_BLOCK_ID,
    REQUEST_FOR_ACTION_ID,
    REQUESTED_FOR_BLOCK_ID,
    SEARCH_INPUT_ACTION_ID,
    FormState,
    parse_request_for,
    parse_view_state,
)
from iga_bridge.models.request import AccessRequestRecord, CreateRequestPayload
from iga_bridge.ui.json_logger import log_audit_event
from iga_bridge.ui.views import build_request_modal
from iga_bridge.validators import MAX_SEARCH_QUERY_LENGTH, validate_justification, validate_search_query

logger = logging.getLogger(__name__)

class WorkflowError(Exception):
    """Base exception for workflow errors."""
    pass

def _errors(block_id: str, message: str) -> Dict[str, Any]:
    return {"response_action": "errors", "errors": {block_id: message}}

class RequestModalWorkflow:
    def __init__(self, slack_adapter: SlackAdapter, iga_client: PingIgaClient, state_store: StateStore):
        """
        Drives the 'Request Access' modal: open, live search, request-for toggle, submit.

        Args:
            slack_adapter: Adapter for Slack API operations
            iga_client: Ping IGA client (search + request creation)
            state_store: Requests table
        """
        self.slack = slack_adapter
        self.iga = iga_client
        self.store = state_store

    def _search(self, query: Optional[str]):
        try:
            query = validate_search_query(query)
        except ValueError as e:
            logger.warning(f"Rejected search term: {e}")
            query = query.strip()[:MAX_SEARCH_QUERY_LENGTH]
        return query, self.iga.search_catalog(query)

    def _render(self, state: FormState, query: str, items) -> Dict[str, Any]:
        return build_request_modal(
            items,
            search_query=query,
            selected_item_id=state.selected_item_id,
            request_for=state.request_for,
            requested_for_user=state.requested_for_user,
            justification=state.justification,
        )

    # --- ENTRY POINTS ---

    def open_modal(self, trigger_id: str, user_id: str, search_term: str = "",
                   requested_for_user: Optional[str] = None) -> None:
        """
        Opens the modal from a slash command or shortcut.
        A message shortcut passes the message author as requested_for_user.
        """
        query, items = self._search(search_term)
        for_other = bool(requested_for_user) and requested_for_user != user_id
        self.slack.open_view(trigger_id, build_request_modal(
            items,
            search_query=query,
            request_for="other" if for_other else "self",
            requested_for_user=requested_for_user if for_other else user_id,
        ))
        logger.info(f"Opened request modal for {user_id} ({len(items)} catalog item(s))")

    def handle_block_action(self, payload: Dict[str, Any]) -> None:
        """Rebuilds the modal after the search term or the request-for choice changes."""
        view = payload.get("view") or {}
        actions = payload.get("actions") or [{}]
        action = actions[0]
        state = parse_view_state((view.get("state") or {}).get("values"))

        action_id = action.get("action_id")
        if action_id == SEARCH_INPUT_ACTION_ID:
            typed = action.get("value")
            query, items = self._search(typed if typed is not None else state.search_query)
        elif action_id == REQUEST_FOR_ACTION_ID:
            selected = action.get("selected_option") or {}
            state = FormState(
                search_query=state.search_query,
                selected_item_id=state.selected_item_id,
                selected_item_label=state.selected_item_label,
                request_for=parse_request_for(selected.get("value")),
                requested_for_user=state.requested_for_user,
                justification=state.justification,
            )
            query, items = self._search(state.search_query)
        else:
            logger.debug(f"Ignoring block action {action_id}")
            return

        self.slack.update_view(view.get("id"), self._render(state, query, items), view_hash=view.get("hash"))

    def handle_submission(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handles view_submission. Returns the response_action body Slack expects:
        'errors' keeps the modal open, 'clear' closes it.
        """
        user_id = (payload.get("user") or {}).get("id")
        view = payload.get("view") or {}
        state = parse_view_state((view.get("state") or {}).get("values"))

        if not state.selected_item_id:
            return _errors(CATALOG_SELECT_BLOCK_ID, "Select a catalog item")

        requested_for = state.requested_for_user if state.is_for_other else user_id
        if not requested_for:
            return _errors(REQUESTED_FOR_BLOCK_ID, "Choose who should receive access")

        try:
            justification = validate_justification(state.justification)
        except ValueError as e:
            return _errors(JUSTIFICATION_BLOCK_ID, str(e))

        label = state.selected_item_label or state.selected_item_id

        try:
            record = self._submit(user_id, requested_for, state.selected_item_id, label, justification)
        except (SubmissionError, AuthError, WorkflowError) as e:
            logger.warning(f"Request submission failed: {type(e).__name__}")
            return _errors(CATALOG_SELECT_BLOCK_ID, str(e))
        except Exception as e:
            logger.error(f"Unexpected submission error: {type(e).__name__}", exc_info=True)
            return _errors(CATALOG_SELECT_BLOCK_ID, "Unable to submit request")

        self._announce(record, for_other=state.is_for_other)
        return {"response_action": "clear"}

    # --- STEPS ---

    def _requester_email(self, user_id: str) -> Optional[str]:
        try:
            return self.slack.get_user_email(user_id)
        except (SlackAPIError, ValueError) as e:
            logger.warning(f"Could not resolve requester email: {type(e).__name__}")
            return None

    def _submit(self, user_id: str, requested_for: str, item_id: str, label: str,
                justification: Optional[str]) -> AccessRequestRecord:
        if not user_id:
            raise WorkflowError("Unable to identify the requester.")

        email = self._requester_email(user_id)
        result = self.iga.create_request(CreateRequestPayload(
            catalog_item_id=item_id,
            catalog_item_label=label,
            requested_for=requested_for,
            requested_by=user_id,
            requester_email=email,
            justification=justification,
        ))

        now = datetime.datetime.now(datetime.timezone.utc).isoformat()
        record = AccessRequestRecord(
            id=result.request_id,
            requester_user_id=user_id,
            requester_email=email,
            requested_for_user_id=requested_for,
            catalog_item_id=item_id,
            catalog_item_label=label,
            status=result.status or "PENDING",
            justification=justification,
            requested_at=now,
            last_synced_at=now,
        )
        self.store.put(record)
        log_audit_event("request_submitted", record)
        logger.info(f"Request {record.id} stored with status {record.status}")
        return record

    def _announce(self, record: AccessRequestRecord, for_other: bool) -> None:
        """Confirmation DMs. The request already exists, so failures here are only logged."""
        if for_other:
            summary = f"You requested *{record.catalog_item_label}* for <@{record.requested_for_user_id}>"
        else:
            summary = f"You requested *{record.catalog_item_label}*"

        try:
            self.slack.send_direct_message(
                record.requester_user_id,
                f"{summary}. Ping IGA request ID: *{record.id}*. We'll notify you as the status changes.",
            )
            if record.requested_for_user_id != record.requester_user_id:
                self.slack.send_direct_message(
                    record.requested_for_user_id,
                    f"<@{record.requester_user_id}> requested *{record.catalog_item_label}* for you. "
                    f"Request ID: *{record.id}*.",
                )
        except SlackAPIError as e:
            logger.warning(f"Failed to send confirmation for {record.id}: {e}")
