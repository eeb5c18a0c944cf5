"""Exceptions raised by role identities and their credential sources."""


class IdentityError(Exception):
    """Base class for identity errors."""

    pass


class EncodingError(IdentityError):
    """Raised when an identity's declared fields cannot be serialized for fingerprinting."""

    pass


class CredentialSourceError(IdentityError):
    """Raised when the assume-role call behind a credential source fails."""

    def __init__(self, message: str, role_arn: str = "", error_code: str = ""):
        full_message = message
        if role_arn:
            full_message += f" (role: {role_arn})"
        if error_code:
            full_message += f" [{error_code}]"
        super().__init__(full_message)
        self.message = message
        self.role_arn = role_arn
        self.error_code = error_code

    def format(self) -> str:
        """Format error for console output."""
        output = f"❌ Credential Source Error: {self.message}"
        if self.role_arn:
            output += f"\n   Role: {self.role_arn}"
        if self.error_code:
            output += f"\n   Code: {self.error_code}"
        return output


class SourceIdentityError(CredentialSourceError):
    """Raised when the source-identity secret cannot be resolved into credentials."""

    pass


__all__ = [
    "IdentityError",
    "EncodingError",
    "CredentialSourceError",
    "SourceIdentityError",
]
