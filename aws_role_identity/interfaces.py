"""Capability contracts for AWS identities and their credential sources.

Callers hold an ``AWSIdentityTypeProvider`` and never need to know which kind
of identity (assumed role, static keys, web identity) sits behind it.
"""

from typing import Callable, Protocol, runtime_checkable

from .credentials import AssumeRoleParams, CredentialValue


@runtime_checkable
class CredentialSource(Protocol):
    """A stateful source of temporary credentials, such as an STS assume-role session."""

    def is_expired(self) -> bool:
        """Return True if the cached credentials are missing or expired."""
        ...

    def retrieve(self) -> CredentialValue:
        """Return current credentials, fetching them if needed."""
        ...


#: Builds a credential source from assume-role parameters. Must not perform I/O.
CredentialSourceFactory = Callable[[AssumeRoleParams], CredentialSource]


@runtime_checkable
class AWSIdentityTypeProvider(Protocol):
    """Contract every identity kind implements."""

    def is_expired(self) -> bool:
        ...

    def retrieve(self) -> CredentialValue:
        ...

    def fingerprint(self) -> bytes:
        """Return a unique hash of the data forming the credentials for this identity."""
        ...


__all__ = ["CredentialSource", "CredentialSourceFactory", "AWSIdentityTypeProvider"]
