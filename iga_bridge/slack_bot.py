import json
import os
import base64
import urllib.parse
import logging
import boto3
import hmac
import hashlib
import time
import uuid

from iga_bridge import runtime
from iga_bridge.adapters.slack_adapter import SlackAdapter, SlackAPIError
from iga_bridge.adapters.state_store import StateStore
from iga_bridge.runtime import WorkflowBootstrapError
from iga_bridge.ui.views import REQUEST_MODAL_CALLBACK_ID
from iga_bridge.workflows.request_modal import RequestModalWorkflow

logger = logging.getLogger(__name__)

SLASH_COMMAND = "/iga"
SEARCH_SHORTCUT_ID = "iga_search_shortcut"
REQUEST_SHORTCUT_ID = "iga_request_shortcut"

_sqs = None
CACHED_MODAL_WORKFLOW = None

def get_sqs_client():
    global _sqs
    if _sqs is None:
        _sqs = boto3.client('sqs')
    return _sqs

def verify_slack_signature(headers: dict, body: str, secret: str) -> bool:
    slack_signature = headers.get('x-slack-signature', '')
    slack_request_timestamp = headers.get('x-slack-request-timestamp', '0')

    # Validate timestamp is numeric before conversion
    try:
        timestamp_int = int(slack_request_timestamp)
    except (ValueError, TypeError):
        logger.error("Invalid timestamp format in Slack signature")
        return False

    if abs(time.time() - timestamp_int) > 60 * 5:
        logger.error("Signature verification failed: Timestamp is older than 5 minutes. Possible replay attack!")
        return False

    sig_basestring = f"v0:{slack_request_timestamp}:{body}"
    my_signature = 'v0=' + hmac.new(
        secret.encode('utf-8'),
        sig_basestring.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()

    return hmac.compare_digest(my_signature, slack_signature)

def _bootstrap_modal_workflow() -> RequestModalWorkflow:
    global CACHED_MODAL_WORKFLOW
    if CACHED_MODAL_WORKFLOW is None:
        table_name = runtime.require_env("REQUESTS_TABLE")
        try:
            CACHED_MODAL_WORKFLOW = RequestModalWorkflow(
                SlackAdapter(runtime.get_bot_token()),
                runtime.get_iga_client(),
                StateStore(table_name=table_name),
            )
        except Exception as e:
            raise WorkflowBootstrapError(f"CRITICAL: Failed to bootstrap the request workflow: {e}") from e
    return CACHED_MODAL_WORKFLOW

def _response(status_code: int, body="") -> dict:
    if isinstance(body, dict):
        return {
            "statusCode": status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }
    return {"statusCode": status_code, "body": body}

# --- EVENTS API ---

def enqueue_home_refresh(user_id: str) -> dict:
    """App Home refreshes can take longer than Slack's 3 seconds, so they go through SQS."""
    queue_url = os.environ.get('HOME_QUEUE_URL')
    if not queue_url:
        logger.error("CRITICAL: HOME_QUEUE_URL environment variable is missing!")
        return _response(500, "System configuration error. Please contact your administrator.")

    ticket_id = str(uuid.uuid4())
    ticket = {"ticket_id": ticket_id, "user_id": user_id}
    try:
        logger.info(f"Queueing App Home refresh (ticket_id: {ticket_id})")
        get_sqs_client().send_message(
            QueueUrl=queue_url,
            MessageBody=json.dumps(ticket),
            MessageAttributes={
                'user_id': {'StringValue': user_id, 'DataType': 'String'},
                'request_type': {'StringValue': 'app_home_refresh', 'DataType': 'String'},
            }
        )
    except Exception as e:
        logger.error(f"Failed to write to SQS: {e}")
        return _response(500, "System temporarily unavailable.")
    return _response(200)

def handle_event_callback(envelope: dict, headers: dict) -> dict:
    if envelope.get('type') == 'url_verification':
        return _response(200, envelope.get('challenge', ''))

    # Slack redelivers events it thinks we missed; the first delivery already queued the work
    if headers.get('x-slack-retry-num'):
        logger.info("Ignoring Slack event retry")
        return _response(200)

    event = envelope.get('event') or {}
    if event.get('type') == 'app_home_opened' and event.get('tab', 'home') == 'home' and event.get('user'):
        return enqueue_home_refresh(event['user'])

    logger.debug(f"Ignoring event type {event.get('type')}")
    return _response(200)

# --- INTERACTIVITY ---

def handle_interaction(payload: dict) -> dict:
    workflow = _bootstrap_modal_workflow()
    kind = payload.get('type')
    user_id = (payload.get('user') or {}).get('id')

    if kind == 'view_submission':
        if (payload.get('view') or {}).get('callback_id') != REQUEST_MODAL_CALLBACK_ID:
            return _response(200)
        result = workflow.handle_submission(payload)
        return _response(200, result)

    if kind == 'block_actions':
        if (payload.get('view') or {}).get('callback_id') == REQUEST_MODAL_CALLBACK_ID:
            workflow.handle_block_action(payload)
        return _response(200)

    if kind == 'shortcut' and payload.get('callback_id') == SEARCH_SHORTCUT_ID:
        workflow.open_modal(payload.get('trigger_id'), user_id)
        return _response(200)

    if kind == 'message_action' and payload.get('callback_id') == REQUEST_SHORTCUT_ID:
        author = (payload.get('message') or {}).get('user')
        workflow.open_modal(payload.get('trigger_id'), user_id, requested_for_user=author)
        return _response(200)

    logger.debug(f"Ignoring interaction type {kind}")
    return _response(200)

def handle_slash_command(parsed_body: dict) -> dict:
    command = parsed_body.get('command', [''])[0]
    user_id = parsed_body.get('user_id', [''])[0]
    trigger_id = parsed_body.get('trigger_id', [''])[0]
    text = parsed_body.get('text', [''])[0]

    if command != SLASH_COMMAND or not user_id or not trigger_id:
        logger.error("Missing required fields in Slack payload")
        return _response(400, "Invalid request format. Please check your command and try again.")

    _bootstrap_modal_workflow().open_modal(trigger_id, user_id, search_term=text)
    return _response(200)

def lambda_handler(event, context):
    runtime.configure_logging()
    try:
        slack_secret = runtime.get_signing_secret()
    except Exception:
        return _response(500, "Configuration Error")

    # --- DECODE THE PAYLOAD FIRST ---
    raw_body = event.get('body', '') or ''

    if event.get('isBase64Encoded', False):
        decoded_body = base64.b64decode(raw_body).decode('utf-8')
    else:
        decoded_body = raw_body

    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}

    if not verify_slack_signature(headers, decoded_body, slack_secret):
        logger.error("Invalid Slack Signature! Dropping request.")
        return _response(401, "Request verification failed. Please contact your administrator if this persists.")

    logger.info("Slack Signature Verified!")

    try:
        if decoded_body.lstrip().startswith('{'):
            return handle_event_callback(json.loads(decoded_body), headers)

        parsed_body = urllib.parse.parse_qs(decoded_body)
        if 'payload' in parsed_body:
            return handle_interaction(json.loads(parsed_body['payload'][0]))
        return handle_slash_command(parsed_body)

    except json.JSONDecodeError:
        logger.error("Slack payload is not valid JSON")
        return _response(400, "Invalid request format.")
    except WorkflowBootstrapError as e:
        logger.error(str(e))
        return _response(500, "System configuration error. Please contact your administrator.")
    except SlackAPIError as e:
        logger.error(f"Slack API call failed while handling the request: {e}")
        return _response(500, "Slack is temporarily unavailable. Please try again in a moment.")
