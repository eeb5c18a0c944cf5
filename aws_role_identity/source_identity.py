"""Resolve a source-identity reference into base AWS credentials.

An identity may name another credential, stored in AWS Secrets Manager, to use
when calling STS. The secret holds JSON in the static-identity format:

    {"AccessKeyID": "...", "SecretAccessKey": "...", "SessionToken": "..."}

``SessionToken`` is optional. Secret values are never logged.
"""

import json
from dataclasses import dataclass

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .config import IdentityConfig
from .errors import SourceIdentityError

logger = structlog.get_logger(__name__)

REQUIRED_KEYS = ["AccessKeyID", "SecretAccessKey"]


@dataclass
class SourceCredentials:
    """Base credentials used to call STS on behalf of a role identity."""

    access_key_id: str
    secret_access_key: str
    session_token: str = ""

    def session(self, region: str) -> boto3.Session:
        return boto3.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token or None,
            region_name=region,
        )


def fetch_source_credentials(client, secret_identifier: str) -> SourceCredentials:
    """Fetch and validate source credentials from AWS Secrets Manager.

    Args:
        client: boto3 Secrets Manager client
        secret_identifier: Secret name or ARN

    Returns:
        SourceCredentials parsed from the secret

    Raises:
        SourceIdentityError: If the secret is missing, binary, not JSON, or incomplete
    """
    try:
        response = client.get_secret_value(SecretId=secret_identifier)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        logger.error(
            "Failed to fetch source identity secret",
            secret_name=secret_identifier,
            error_code=error_code,
        )
        raise SourceIdentityError(
            f"Cannot read source identity secret '{secret_identifier}'", error_code=error_code
        ) from e
    except BotoCoreError as e:
        logger.error("Failed to fetch source identity secret", secret_name=secret_identifier, error=str(e))
        raise SourceIdentityError(f"Cannot read source identity secret '{secret_identifier}': {e}") from e

    secret_string = response.get("SecretString")
    if not secret_string:
        raise SourceIdentityError(f"Source identity secret '{secret_identifier}' does not contain string data")

    try:
        data = json.loads(secret_string)
    except json.JSONDecodeError as e:
        raise SourceIdentityError(
            f"Source identity secret '{secret_identifier}' contains invalid JSON: {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise SourceIdentityError(f"Source identity secret '{secret_identifier}' must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise SourceIdentityError(
            f"Source identity secret '{secret_identifier}' is missing required keys: {', '.join(missing)}"
        )

    logger.debug(
        "Source identity secret resolved",
        secret_name=secret_identifier,
        has_session_token=bool(data.get("SessionToken")),
    )

    return SourceCredentials(
        access_key_id=data["AccessKeyID"],
        secret_access_key=data["SecretAccessKey"],
        session_token=data.get("SessionToken", ""),
    )


def resolve_source_session(secret_identifier: str, config: IdentityConfig) -> boto3.Session:
    """Build a boto3 session from the credentials stored under ``secret_identifier``.

    The Secrets Manager client itself uses the default credential chain.
    """
    sm_client = boto3.Session(region_name=config.aws_region).client(
        "secretsmanager", config=config.botocore_config()
    )
    credentials = fetch_source_credentials(sm_client, secret_identifier)
    return credentials.session(config.aws_region)
