import sys
import logging
from iga_bridge.adapters.ping_iga import PingIgaClient
from iga_bridge.core.credentials import CredentialProvider
from iga_bridge.core.reconciler import StatusReconciler
from iga_bridge.models.form_state import (
    CATALOG_SELECT_ACTION_ID,
    CATALOG_SELECT_BLOCK_ID,
    JUSTIFICATION_ACTION_ID,
    JUSTIFICATION_BLOCK_ID,
)
from iga_bridge.ui.printer import print_catalog, print_requests
from iga_bridge.workflows.request_modal import RequestModalWorkflow

class EmptySecretStore:
    """No Ping IGA secrets: everything runs in demo mode."""
    def get(self, name):
        return None

class MemoryStateStore:
    def __init__(self):
        self.items = {}

    def put(self, record):
        self.items[record.id] = record

    def query(self, limit=200):
        return list(self.items.values())[:limit]

class ConsoleSlack:
    """
    Stunt Double: Pretends to be Slack.
    Prints DMs instead of sending them.
    """
    def get_user_email(self, user_id):
        return f"{user_id.lower()}@example.com"

    def send_direct_message(self, user_id, text):
        print(f"[DM to {user_id}] {text}")
        return True

if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(levelname)s - %(message)s')
    query = sys.argv[1] if len(sys.argv) > 1 else ""

    # --- SETUP ---
    iga = PingIgaClient(CredentialProvider(EmptySecretStore()))
    store = MemoryStateStore()
    slack = ConsoleSlack()
    workflow = RequestModalWorkflow(slack, iga, store)

    # --- SEARCH ---
    items = iga.search_catalog(query)
    print_catalog(items, query=query)
    if not items:
        sys.exit(2)

    # --- SUBMIT (same payload shape Slack sends on view_submission) ---
    item = items[0]
    response = workflow.handle_submission({
        "user": {"id": "U0DEMO0001"},
        "view": {"state": {"values": {
            CATALOG_SELECT_BLOCK_ID: {CATALOG_SELECT_ACTION_ID: {
                "selected_option": {"value": item.id, "text": {"type": "plain_text", "text": item.label}},
            }},
            JUSTIFICATION_BLOCK_ID: {JUSTIFICATION_ACTION_ID: {"value": "Quarterly reporting"}},
        }}},
    })
    print(f"\n[view_submission response]: {response}\n")

    # --- RECONCILE ---
    reconciler = StatusReconciler(iga, store, slack)
    print_requests(reconciler.reconcile("U0DEMO0001"))

    sys.exit(0 if response.get("response_action") == "clear" else 3)
