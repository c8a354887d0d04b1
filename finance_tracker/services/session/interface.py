"""
Session Provider Interface

Supplies the identity of the signed-in user plus login/logout actions.
The transaction store reloads whenever this identity changes.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.transaction import User


class SessionProvider(ABC):
    """Source of the current user's identity."""

    @property
    @abstractmethod
    def current_user(self) -> Optional[User]:
        """The signed-in user, or None."""
        pass

    @abstractmethod
    def login(self) -> None:
        pass

    @abstractmethod
    def logout(self) -> None:
        pass


class LocalSessionProvider(SessionProvider):
    """
    In-process session for the standalone variant and for tests.

    `login()` signs in the configured default user; `sign_in()` switches
    to any user.
    """

    def __init__(self, default_user: User, signed_in: bool = True):
        self._default_user = default_user
        self._user: Optional[User] = default_user if signed_in else None

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    def login(self) -> None:
        self._user = self._default_user

    def sign_in(self, user: User) -> None:
        self._user = user

    def logout(self) -> None:
        self._user = None
