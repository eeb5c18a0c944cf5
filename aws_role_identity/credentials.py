"""Credential values and assume-role parameters.

``build_assume_role_params`` is the field remapping from a role identity to the
parameters handed to a credential source factory. It performs no I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from .identity import AWSRoleIdentity

#: Provider name reported on credentials obtained by assuming a role
ASSUME_ROLE_PROVIDER_NAME = "AssumeRoleProvider"


@dataclass(frozen=True)
class CredentialValue:
    """Temporary AWS credentials returned by a credential source.

    Attributes:
        access_key_id: AWS access key ID
        secret_access_key: AWS secret access key (sensitive)
        session_token: STS session token (sensitive)
        expires_at: When the credentials expire, or None if unknown
        provider_name: Name of the provider that produced the credentials
    """

    access_key_id: str
    secret_access_key: str
    session_token: str = ""
    expires_at: Optional[datetime] = None
    provider_name: str = ASSUME_ROLE_PROVIDER_NAME

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """Serialize for display, redacting secret material by default."""
        return {
            "accessKeyId": self.access_key_id,
            "secretAccessKey": "***" if redact else self.secret_access_key,
            "sessionToken": "***" if redact and self.session_token else self.session_token,
            "expiration": self.expires_at.isoformat() if self.expires_at else None,
            "providerName": self.provider_name,
        }


@dataclass(frozen=True)
class Tag:
    key: str
    value: str


@dataclass(frozen=True)
class PolicyDescriptor:
    arn: str


@dataclass(frozen=True)
class AssumeRoleParams:
    """Everything a credential source needs to assume a role.

    The inline policy is always present, even when empty; sources decide how
    to send an empty policy to the remote service.
    """

    role_arn: str
    session_name: str = ""
    tags: Tuple[Tag, ...] = ()
    transitive_tag_keys: Tuple[str, ...] = ()
    duration: timedelta = field(default_factory=timedelta)
    policy: str = ""
    policy_arns: Tuple[PolicyDescriptor, ...] = ()
    external_id: str = ""
    source_identity_secret_name: str = ""


def build_assume_role_params(identity: "AWSRoleIdentity") -> AssumeRoleParams:
    """Translate a role identity into assume-role parameters.

    Policy ARNs and transitive tag keys keep their input order. Session tags are
    sorted by key since STS treats them as a set.

    Args:
        identity: The role identity to translate

    Returns:
        AssumeRoleParams for a credential source factory
    """
    policy_arns = tuple(PolicyDescriptor(arn=arn) for arn in identity.policy_arns)
    tags = tuple(Tag(key=key, value=value) for key, value in sorted(identity.tags.items()))
    transitive_tag_keys = tuple(identity.transitive_tags)

    return AssumeRoleParams(
        role_arn=identity.role_arn,
        session_name=identity.session_name,
        tags=tags,
        transitive_tag_keys=transitive_tag_keys,
        duration=timedelta(seconds=identity.duration_seconds),
        policy=identity.inline_policy,
        policy_arns=policy_arns,
        external_id=identity.external_id,
        source_identity_secret_name=identity.source_identity_secret_name,
    )


__all__ = [
    "ASSUME_ROLE_PROVIDER_NAME",
    "CredentialValue",
    "Tag",
    "PolicyDescriptor",
    "AssumeRoleParams",
    "build_assume_role_params",
]
