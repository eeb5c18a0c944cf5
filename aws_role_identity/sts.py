"""STS-backed credential source for role identities.

Wraps botocore's ``DeferredRefreshableCredentials`` around ``sts.assume_role``:
building a source performs no network I/O, the first ``retrieve()`` assumes the
role, and later calls reuse the cached credentials until they come within the
configured expiry window of their expiration.
"""

import functools
import re
import socket
import time
from datetime import datetime
from typing import Optional

import boto3
import structlog
from botocore.credentials import DeferredRefreshableCredentials
from botocore.exceptions import BotoCoreError, ClientError

from .config import IdentityConfig
from .credentials import ASSUME_ROLE_PROVIDER_NAME, AssumeRoleParams, CredentialValue
from .errors import CredentialSourceError
from .interfaces import CredentialSourceFactory
from .source_identity import resolve_source_session

logger = structlog.get_logger(__name__)

#: Used when an identity does not configure a duration (STS minimum)
DEFAULT_DURATION_SECONDS = 900

#: AWS limit for RoleSessionName
MAX_SESSION_NAME_LENGTH = 64

_INVALID_SESSION_NAME_CHARS = re.compile(r"[^\w+=,.@-]")


class StsAssumeRoleSource:
    """Credential source that assumes an IAM role through STS.

    Usage:
        params = build_assume_role_params(identity)
        source = StsAssumeRoleSource(params)
        credentials = source.retrieve()  # calls sts.assume_role

    Attributes:
        params: Assume-role parameters this source was built from
        config: Client configuration (region, timeouts, retries, expiry window)
        session_name: Session name sent to STS (generated if params has none)
        expiry_window: Seconds before expiration at which credentials are refreshed,
            EXPIRY_WINDOW_SECONDS capped at half the session duration
    """

    def __init__(
        self,
        params: AssumeRoleParams,
        config: Optional[IdentityConfig] = None,
        sts_client=None,
    ):
        self.params = params
        self.config = config or IdentityConfig()
        self.session_name = params.session_name or self._generate_session_name()

        self.expiry_window = min(self.config.expiry_window_seconds, self.duration_seconds // 2)

        self._sts_client = sts_client
        self._expires_at: Optional[datetime] = None
        self._credentials = DeferredRefreshableCredentials(
            refresh_using=self._refresh,
            method="sts-assume-role",
        )
        # botocore defaults to 15 and 10 minute windows, which span a whole 900s session.
        self._credentials._advisory_refresh_timeout = self.expiry_window
        self._credentials._mandatory_refresh_timeout = self.expiry_window

    @property
    def duration_seconds(self) -> int:
        """Session duration requested from STS."""
        return int(self.params.duration.total_seconds()) or DEFAULT_DURATION_SECONDS

    def _generate_session_name(self) -> str:
        """Generate a session name for CloudTrail auditing.

        Returns:
            Session name in format: "{prefix}-{hostname}-{timestamp}", at most 64 chars
        """
        try:
            hostname = socket.gethostname()
        except Exception:
            hostname = "unknown"

        timestamp = str(int(time.time()))
        prefix = _INVALID_SESSION_NAME_CHARS.sub("-", self.config.session_name_prefix)
        hostname = _INVALID_SESSION_NAME_CHARS.sub("-", hostname)

        room = MAX_SESSION_NAME_LENGTH - len(prefix) - len(timestamp) - 2
        hostname = hostname[: max(room, 0)]
        return f"{prefix}-{hostname}-{timestamp}"[-MAX_SESSION_NAME_LENGTH:]

    def _client(self):
        if self._sts_client is None:
            if self.params.source_identity_secret_name:
                session = resolve_source_session(self.params.source_identity_secret_name, self.config)
            else:
                session = boto3.Session(region_name=self.config.aws_region)
            self._sts_client = session.client("sts", **self.config.sts_client_kwargs())
        return self._sts_client

    def assume_role_kwargs(self) -> dict:
        """Build the keyword arguments for ``sts.assume_role``.

        Optional values are omitted when empty; STS rejects empty strings and lists.
        """
        params = self.params
        kwargs = {
            "RoleArn": params.role_arn,
            "RoleSessionName": self.session_name,
            "DurationSeconds": self.duration_seconds,
        }
        if params.tags:
            kwargs["Tags"] = [{"Key": tag.key, "Value": tag.value} for tag in params.tags]
        if params.transitive_tag_keys:
            kwargs["TransitiveTagKeys"] = list(params.transitive_tag_keys)
        if params.policy:
            kwargs["Policy"] = params.policy
        if params.policy_arns:
            kwargs["PolicyArns"] = [{"arn": policy.arn} for policy in params.policy_arns]
        if params.external_id:
            kwargs["ExternalId"] = params.external_id
        return kwargs

    def _refresh(self) -> dict:
        """Assume the role and return credential metadata in botocore's format.

        Raises:
            CredentialSourceError: If STS rejects the call or cannot be reached
        """
        role_arn = self.params.role_arn
        client = self._client()

        logger.debug(
            "Assuming IAM role",
            role_arn=role_arn,
            session_name=self.session_name,
            has_external_id=bool(self.params.external_id),
            tag_count=len(self.params.tags),
        )

        try:
            response = client.assume_role(**self.assume_role_kwargs())
        except ClientError as e:
            error = e.response.get("Error", {})
            logger.error(
                "Failed to assume role",
                role_arn=role_arn,
                error_code=error.get("Code", ""),
                error=error.get("Message", str(e)),
            )
            raise CredentialSourceError(
                f"Failed to assume role: {error.get('Message', str(e))}",
                role_arn=role_arn,
                error_code=error.get("Code", ""),
            ) from e
        except BotoCoreError as e:
            logger.error("Failed to assume role", role_arn=role_arn, error=str(e), error_type=type(e).__name__)
            raise CredentialSourceError(f"Failed to assume role: {e}", role_arn=role_arn) from e

        credentials = response["Credentials"]
        expiration = credentials["Expiration"]
        self._expires_at = expiration

        logger.info(
            "Role assumed successfully",
            role_arn=role_arn,
            expires_at=expiration.isoformat(),
        )

        return {
            "access_key": credentials["AccessKeyId"],
            "secret_key": credentials["SecretAccessKey"],
            "token": credentials["SessionToken"],
            "expiry_time": expiration.isoformat(),
        }

    def is_expired(self) -> bool:
        """True before the first fetch, or once the credentials are within the expiry window."""
        return self._credentials.refresh_needed(self.expiry_window)

    def retrieve(self) -> CredentialValue:
        """Return current credentials, assuming the role if none are cached or they are expiring."""
        frozen = self._credentials.get_frozen_credentials()
        return CredentialValue(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token or "",
            expires_at=self._expires_at,
            provider_name=ASSUME_ROLE_PROVIDER_NAME,
        )


def sts_source_factory(config: Optional[IdentityConfig] = None) -> CredentialSourceFactory:
    """Return a factory building ``StsAssumeRoleSource`` objects with a shared config."""
    return functools.partial(StsAssumeRoleSource, config=config)
