"""AWS role identities.

``AWSRoleIdentity`` describes how to assume an IAM role. It exposes a
deterministic fingerprint of its declared fields, so a caller can tell whether
two identity specifications are equivalent, and lazily builds a credential
source the first time credentials are requested.

Field aliases match the persisted schema (``roleARN``, ``sessionName``, ...).
Schema patterns and bounds are enforced upstream and are not re-validated here.
"""

import copy
import hashlib
import json
import threading
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel, Field, PrivateAttr

from .credentials import CredentialValue, build_assume_role_params
from .errors import EncodingError
from .interfaces import CredentialSource, CredentialSourceFactory
from .sts import StsAssumeRoleSource

logger = structlog.get_logger(__name__)

#: Namespace mixed into every role identity fingerprint
FINGERPRINT_NAMESPACE = "aws-role-identity:v1|"


class AWSRole(BaseModel):
    """Role to assume and the session policies that scope it."""

    role_arn: str = Field(..., alias="roleARN", description="ARN of the role to assume")
    session_name: str = Field("", alias="sessionName", description="Identifier for the assumed role session")
    duration_seconds: int = Field(
        0, ge=0, alias="durationSeconds", description="Session duration in seconds before renewal"
    )
    inline_policy: str = Field("", alias="inlinePolicy", description="Inline session policy in JSON format")
    policy_arns: List[str] = Field(
        default_factory=list, alias="policyARNs", description="Managed session policy ARNs, same account as the role"
    )

    class Config:
        populate_by_name = True


class AWSRoleIdentity(AWSRole):
    """Identity that obtains temporary credentials by assuming a role.

    The credential source is private state: it is built on the first
    ``retrieve()``, reused afterwards, and never part of the fingerprint.

    Usage:
        identity = AWSRoleIdentity(roleARN="arn:aws:iam::123456789012:role/demo", externalID="abc")
        key = identity.fingerprint_hex()
        credentials = identity.retrieve()
    """

    external_id: str = Field(
        "", alias="externalID", description="Identifier that may be required to assume a role in another account"
    )
    tags: Dict[str, str] = Field(default_factory=dict, description="Session tags to pass")
    transitive_tags: List[str] = Field(
        default_factory=list, alias="transitiveTags", description="Session tag keys to set as transitive"
    )
    source_identity_secret_name: str = Field(
        "", alias="controlPlaneRef", description="Optional reference to another credential used to assume the role"
    )

    _source: Optional[CredentialSource] = PrivateAttr(default=None)
    _source_factory: Optional[CredentialSourceFactory] = PrivateAttr(default=None)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    class Config:
        populate_by_name = True

    def __init__(self, source_factory: Optional[CredentialSourceFactory] = None, **data):
        super().__init__(**data)
        self._source_factory = source_factory

    def with_source_factory(self, source_factory: CredentialSourceFactory) -> "AWSRoleIdentity":
        """Use ``source_factory`` for the next credential source this identity builds."""
        with self._lock:
            self._source_factory = source_factory
        return self

    def __eq__(self, other: object) -> bool:
        # Declared fields only; the credential source and lock are private state.
        if not isinstance(other, AWSRoleIdentity):
            return NotImplemented
        return type(self) is type(other) and self.model_dump() == other.model_dump()

    def _fresh_copy(self, fields: dict) -> "AWSRoleIdentity":
        # model_construct gives the copy its own lock and no credential source.
        copied = type(self).model_construct(_fields_set=set(self.model_fields_set), **fields)
        copied._source_factory = self._source_factory
        return copied

    def __copy__(self) -> "AWSRoleIdentity":
        """Copy the declared fields and source factory; credentials are fetched anew."""
        return self._fresh_copy(dict(self.__dict__))

    def __deepcopy__(self, memo: Optional[dict] = None) -> "AWSRoleIdentity":
        return self._fresh_copy(copy.deepcopy(self.__dict__, memo))

    def fingerprint(self) -> bytes:
        """Return the SHA-256 digest of the declared fields.

        Mapping keys are sorted and list order is kept, so two identities with
        equal fields always produce the same digest whether or not either has
        retrieved credentials.

        Raises:
            EncodingError: If the fields cannot be serialized
        """
        try:
            payload = json.dumps(
                self.model_dump(by_alias=True),
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            )
            encoded = (FINGERPRINT_NAMESPACE + payload).encode("utf-8")
        except (TypeError, ValueError) as e:
            # UnicodeEncodeError (lone surrogates) is a ValueError
            raise EncodingError(f"Cannot serialize role identity for fingerprinting: {e}") from e
        return hashlib.sha256(encoded).digest()

    def fingerprint_hex(self) -> str:
        """Return ``fingerprint()`` as a lowercase hex string."""
        return self.fingerprint().hex()

    def is_expired(self) -> bool:
        """True until a credential source exists, then whatever the source reports."""
        source = self._source
        if source is None:
            return True
        return source.is_expired()

    def retrieve(self) -> CredentialValue:
        """Return temporary credentials for the role.

        Errors from the credential source propagate unchanged.
        """
        return self._ensure_source().retrieve()

    def reset(self) -> None:
        """Drop the credential source; the next ``retrieve()`` builds a new one."""
        with self._lock:
            self._source = None

    def _ensure_source(self) -> CredentialSource:
        source = self._source
        if source is not None:
            return source
        with self._lock:
            if self._source is None:
                self._source = self._build_source()
            return self._source

    def _build_source(self) -> CredentialSource:
        factory = self._source_factory
        if factory is None:
            factory = StsAssumeRoleSource

        params = build_assume_role_params(self)
        logger.debug(
            "Building assume-role credential source",
            role_arn=params.role_arn,
            policy_arn_count=len(params.policy_arns),
            tag_count=len(params.tags),
            transitive_tag_count=len(params.transitive_tag_keys),
            has_external_id=bool(params.external_id),
            has_source_identity=bool(params.source_identity_secret_name),
        )
        return factory(params)


__all__ = ["FINGERPRINT_NAMESPACE", "AWSRole", "AWSRoleIdentity"]
