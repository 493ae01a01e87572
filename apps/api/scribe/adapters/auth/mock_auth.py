"""Mock auth verifier for local development and tests."""

from scribe.adapters.auth.base import AuthVerificationError, TokenVerifier
from scribe.schemas.auth import AuthPrincipal


class MockTokenVerifier(TokenVerifier):
    """Accepts deterministic test tokens only.

    Expected token format:
    - ``test:<user_id>``
    - ``test:<user_id>:<role>``
    - ``test:<user_id>:<role>:<practice_id>``

    The practice defaults to the user id, so each test user is its own tenant.
    """

    def verify_token(self, token: str) -> AuthPrincipal:
        parts = token.split(":")
        if len(parts) not in (2, 3, 4) or parts[0] != "test":
            raise AuthVerificationError("Invalid bearer token")

        user_id = parts[1].strip()
        role = parts[2].strip() if len(parts) >= 3 else "clinician"
        practice_id = parts[3].strip() if len(parts) == 4 else user_id

        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")
        if not role:
            raise AuthVerificationError("Bearer token missing role")
        if not practice_id:
            raise AuthVerificationError("Bearer token missing practice")

        return AuthPrincipal(user_id=user_id, role=role, practice_id=practice_id)


__all__ = ["MockTokenVerifier"]
