"""
Authentication Collaborator

Authentication itself happens elsewhere. The reconcilers only need to
ask "who is signed in right now?", and to refuse to touch the store
when nobody is.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ledger_sync.audit import get_logger


class AuthError(Exception):
    """Base exception for identity problems."""
    pass


class MissingUserError(AuthError):
    """An operation was called without a user id."""

    def __init__(self, message: str = "No user id found."):
        super().__init__(message)


class NotSignedInError(AuthError):
    """The current user could not be resolved from the session."""

    def __init__(self, message: str = "Not signed in"):
        super().__init__(message)


def require_user_id(user_id: Optional[str]) -> str:
    """
    Return the user id, or fail before any store call is made.

    Raises:
        MissingUserError: If the id is None or empty
    """
    if not user_id:
        raise MissingUserError()
    return user_id


class AuthProvider(ABC):
    """Exposes the id of the currently authenticated user."""

    @abstractmethod
    async def current_user_id(self) -> Optional[str]:
        """Return the signed-in user's id, or None."""
        pass


class SessionAuthProvider(AuthProvider):
    """
    Holds the identity established for the current session.

    The sign-in flow sets it once the user is authenticated and clears it
    on sign-out.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id or None
        self._logger = get_logger(__name__)

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        self._user_id = require_user_id(user_id)
        self._logger.info("user_signed_in", user_id=user_id)

    def sign_out(self) -> None:
        if self._user_id:
            self._logger.info("user_signed_out", user_id=self._user_id)
        self._user_id = None

    async def current_user_id(self) -> Optional[str]:
        return self._user_id
