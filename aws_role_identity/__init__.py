"""Assume AWS IAM roles from declarative identity specifications."""

from .credentials import AssumeRoleParams, CredentialValue, PolicyDescriptor, Tag, build_assume_role_params
from .errors import CredentialSourceError, EncodingError, IdentityError, SourceIdentityError
from .identity import AWSRole, AWSRoleIdentity
from .interfaces import AWSIdentityTypeProvider, CredentialSource, CredentialSourceFactory
from .sts import StsAssumeRoleSource, sts_source_factory
from .version import __version__

__all__ = [
    "AWSRole",
    "AWSRoleIdentity",
    "AWSIdentityTypeProvider",
    "CredentialSource",
    "CredentialSourceFactory",
    "CredentialValue",
    "AssumeRoleParams",
    "Tag",
    "PolicyDescriptor",
    "build_assume_role_params",
    "StsAssumeRoleSource",
    "sts_source_factory",
    "IdentityError",
    "EncodingError",
    "CredentialSourceError",
    "SourceIdentityError",
    "__version__",
]
