"""
Warm-start caches shared by the Lambda entry points.

Everything here lives at module level on purpose: Lambda keeps the module
loaded between invocations, so the SSM client, the Slack secrets and the Ping
IGA client (with its token cache) survive for the life of the container.
"""
import os
import logging
import boto3

from iga_bridge.adapters.ping_iga import PingIgaClient
from iga_bridge.adapters.secret_store import SSMSecretStore
from iga_bridge.core.credentials import CredentialProvider

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PREFIX = "/iga-bridge"
DEFAULT_BOT_TOKEN_PARAM = "/iga-bridge/slack/bot_token"
DEFAULT_SIGNING_SECRET_PARAM = "/iga-bridge/slack/signing_secret"

_ssm = None
CACHED_PARAMETERS = {}
CACHED_IGA_CLIENT = None

class WorkflowBootstrapError(Exception):
    """Raised when a Lambda cannot be wired from its environment."""
    pass

def configure_logging():
    root = logging.getLogger()
    root.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    if not root.handlers:
        logging.basicConfig(format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

def get_ssm_client():
    global _ssm
    if _ssm is None:
        _ssm = boto3.client('ssm')
    return _ssm

def get_parameter(name: str) -> str:
    """Reads a SecureString parameter once per container."""
    if CACHED_PARAMETERS.get(name):
        return CACHED_PARAMETERS[name]

    logger.info(f"Cold Start: Fetching {name} from SSM Parameter Store...")
    try:
        response = get_ssm_client().get_parameter(Name=name, WithDecryption=True)
    except Exception as e:
        logger.error(f"Failed to fetch parameter {name}: {type(e).__name__}")
        raise
    CACHED_PARAMETERS[name] = response['Parameter']['Value']
    return CACHED_PARAMETERS[name]

def get_bot_token() -> str:
    return get_parameter(os.environ.get("SLACK_BOT_TOKEN_PARAM", DEFAULT_BOT_TOKEN_PARAM))

def get_signing_secret() -> str:
    return get_parameter(os.environ.get("SLACK_SIGNING_SECRET_PARAM", DEFAULT_SIGNING_SECRET_PARAM))

def require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise WorkflowBootstrapError(f"CRITICAL: {name} environment variable not set.")
    return value

def get_iga_client() -> PingIgaClient:
    """One PingIgaClient per container so config and token caches are reused."""
    global CACHED_IGA_CLIENT
    if CACHED_IGA_CLIENT is None:
        prefix = os.environ.get("IGA_SECRET_PREFIX", DEFAULT_SECRET_PREFIX)
        secret_store = SSMSecretStore(prefix=prefix, ssm_client=get_ssm_client())
        CACHED_IGA_CLIENT = PingIgaClient(CredentialProvider(secret_store))
    return CACHED_IGA_CLIENT
