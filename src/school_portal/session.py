"""
Current identity for the running app.

A ``Session`` is created once per page and handed to every view and
controller that needs to scope its queries ("classes where teacher_id = me").
It is loaded on sign-in and cleared on sign-out.
"""

import logging

from .models import Identity

logger = logging.getLogger(__name__)


class Session:
    """Holds the signed-in ``Identity`` and its profile row."""

    def __init__(self, backend):
        self.backend = backend
        self.identity = None
        self._listeners = []

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self.identity)

    @property
    def signed_in(self):
        return self.identity is not None

    @property
    def user_id(self):
        return self.identity.user_id if self.identity else None

    @property
    def role(self):
        return self.identity.role if self.identity else None

    async def sign_in(self, email, password):
        user_id = await self.backend.sign_in(email, password)
        return await self._load_profile(user_id)

    async def load(self):
        """Restore the identity of an existing auth session, if any."""
        user_id = await self.backend.current_user_id()
        if user_id is None:
            self.clear()
            return None
        return await self._load_profile(user_id)

    async def _load_profile(self, user_id):
        rows = await self.backend.query("users", filters={"id": user_id}, limit=1)
        if rows:
            self.identity = Identity.from_profile(rows[0])
        else:
            logger.warning("No profile row for user %s", user_id)
            self.identity = Identity(user_id)
        logger.info("Signed in as %s (%s)", self.identity.email or user_id, self.identity.role)
        self._emit()
        return self.identity

    async def sign_out(self):
        try:
            await self.backend.sign_out()
        finally:
            self.clear()

    def clear(self):
        if self.identity is not None:
            logger.info("Session cleared for %s", self.identity.user_id)
        self.identity = None
        self._emit()
