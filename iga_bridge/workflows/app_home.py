import json
import logging
from typing import List

from iga_bridge import runtime
from iga_bridge.adapters.slack_adapter import SlackAdapter
from iga_bridge.adapters.state_store import StateStore
from iga_bridge.core.reconciler import StatusReconciler
from iga_bridge.models.request import AccessRequestRecord
from iga_bridge.runtime import WorkflowBootstrapError
from iga_bridge.ui.views import build_app_home_view
from iga_bridge.validators import validate_home_event

logger = logging.getLogger(__name__)

# Warm-start cache
CACHED_HOME_WORKFLOW = None

class AppHomeWorkflow:
    def __init__(self, slack_adapter: SlackAdapter, reconciler: StatusReconciler):
        """
        Refreshes request statuses and publishes the Home tab.

        Args:
            slack_adapter: Adapter for Slack API operations
            reconciler: Status reconciliation sweep
        """
        self.slack = slack_adapter
        self.reconciler = reconciler

    def render(self, user_id: str) -> List[AccessRequestRecord]:
        requests = self.reconciler.reconcile(user_id)
        self.slack.publish_home(user_id, build_app_home_view(requests))
        logger.info(f"Published App Home for {user_id} with {len(requests)} request(s)")
        return requests

    def process_request(self, event: dict) -> None:
        """
        Entry point for one SQS ticket.

        Expected event payload:
        {
            "user_id": "U1234ABCD"
        }
        """
        user_id = validate_home_event(event)
        self.render(user_id)


def _bootstrap_workflow() -> AppHomeWorkflow:
    # Reused across warm invocations so the reconciler's announced-transition set survives
    global CACHED_HOME_WORKFLOW
    if CACHED_HOME_WORKFLOW is not None:
        return CACHED_HOME_WORKFLOW

    try:
        table_name = runtime.require_env("REQUESTS_TABLE")
        slack_adapter = SlackAdapter(runtime.get_bot_token())
        store = StateStore(table_name=table_name)
        reconciler = StatusReconciler(runtime.get_iga_client(), store, slack_adapter)
    except WorkflowBootstrapError as e:
        logger.error(str(e))
        raise
    except Exception as e:
        logger.error(f"CRITICAL: Failed to bootstrap the App Home workflow: {e}")
        raise WorkflowBootstrapError(str(e)) from e

    CACHED_HOME_WORKFLOW = AppHomeWorkflow(slack_adapter, reconciler)
    return CACHED_HOME_WORKFLOW


def lambda_handler(event, context):
    """
    Lambda entry point for App Home refresh tickets.

    Args:
        event: SQS event containing {"user_id": ...} tickets
        context: Lambda context object
    """
    runtime.configure_logging()
    workflow = _bootstrap_workflow()

    processed = 0
    malformed = 0
    for record in event.get('Records', []):
        try:
            ticket = json.loads(record.get('body', '{}'))
            validate_home_event(ticket)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Discarding malformed ticket {record.get('messageId')}: {type(e).__name__}")
            malformed += 1
            continue

        logger.info(f"Processing ticket from SQS: {record.get('messageId')}")
        try:
            workflow.process_request(ticket)
        except Exception as e:
            logger.error(f"Unexpected error processing record: {e}")
            raise
        processed += 1

    return {"processed": processed, "malformed": malformed}
