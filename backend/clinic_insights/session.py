"""Explicit session context for collaborator API calls.

A SessionContext carries the bearer credential for one caller. It is set on
login, cleared on logout or when the collaborator answers 401/403, and is
passed explicitly to the API client instead of being read from global state.
"""

import logging

logger = logging.getLogger(__name__)


class SessionContext:
    """Holds the bearer credential for one authenticated caller."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        """Store the credential obtained at login."""
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token

    def clear(self) -> None:
        """Forget the credential (logout or rejected by the API)."""
        if self._token is not None:
            logger.info("Clearing session credential")
        self._token = None

    def auth_headers(self) -> dict[str, str]:
        """Authorization header for outgoing requests, if authenticated."""
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def __repr__(self) -> str:
        state = "authenticated" if self.is_authenticated else "anonymous"
        return f"SessionContext({state})"
