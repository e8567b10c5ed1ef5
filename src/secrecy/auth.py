"""Signed-in user state.

The authentication provider itself is external; this only records which
opaque user id (if any) is signed in and announces changes on the bus.
"""

import logging

from .events import EventBus, Topic

logger = logging.getLogger(__name__)


class AuthState:
    """Holds the current user id. No id means not authorized to send."""

    def __init__(self, bus: EventBus | None = None, user_id: str | None = None) -> None:
        self.bus = bus
        self._user_id = user_id or None

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str) -> None:
        user_id = user_id.strip()
        if not user_id:
            raise ValueError("user_id must not be empty")
        self._user_id = user_id
        logger.info("Signed in as %s", user_id)
        self._announce()

    def sign_out(self) -> None:
        if self._user_id is None:
            return
        logger.info("Signed out %s", self._user_id)
        self._user_id = None
        self._announce()

    def _announce(self) -> None:
        if self.bus is not None:
            self.bus.publish(Topic.AUTH)
