import boto3
import logging
from typing import Optional
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

class SecretStoreError(Exception):
    """Raised when SSM Parameter Store cannot be read (other than a missing parameter)."""
    pass

class SSMSecretStore:
    """
    Reads app secrets (PING_IGA_*) from SSM Parameter Store.
    Each secret lives under a common prefix, e.g. /iga-bridge/PING_IGA_BASE_URL.
    """
    def __init__(self, prefix: str = "/iga-bridge", ssm_client=None):
        # Dependency Injection allows us to pass a fake client during testing
        self.prefix = prefix.rstrip("/")
        self.ssm = ssm_client or boto3.client("ssm")

    def __repr__(self):
        return f"SSMSecretStore(prefix={self.prefix})"

    def get(self, name: str) -> Optional[str]:
        """
        Returns the decrypted value, or None if the parameter does not exist.

        Raises:
            SecretStoreError: On any other SSM failure (permissions, throttling...)
        """
        parameter_name = f"{self.prefix}/{name}"
        try:
            response = self.ssm.get_parameter(Name=parameter_name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                logger.debug(f"Secret {name} is not set")
                return None
            raise SecretStoreError(f"Unable to read secret {name}: {error_code}")

        value = response.get("Parameter", {}).get("Value")
        return value or None
