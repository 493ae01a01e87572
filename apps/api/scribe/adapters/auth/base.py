"""Authentication provider interfaces."""

from abc import ABC, abstractmethod

from scribe.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """Raised when a token cannot be verified or normalized."""


class TokenVerifier(ABC):
    """Provider-neutral token verification interface.

    The surrounding application supplies the real implementation; this service
    only consumes the normalized principal.
    """

    @abstractmethod
    def verify_token(self, token: str) -> AuthPrincipal:
        """Verify token and return normalized principal."""


__all__ = ["AuthVerificationError", "TokenVerifier"]
