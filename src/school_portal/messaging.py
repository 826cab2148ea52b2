"""
Direct messages between a teacher and the students of their classes.

New messages addressed to the signed-in user arrive through a realtime
subscription, independently of anything the user is doing. They are appended
to the open thread (deduplicated by id) without touching the draft text.
"""

import logging
from datetime import datetime, timezone

from .controller import RequestSequence
from .database import BackendError
from .notifier import Notifier

logger = logging.getLogger(__name__)


def thread_filter(user_id, contact_id):
    """PostgREST ``or`` filter selecting both directions of a conversation."""
    return (
        f"and(sender_id.eq.{user_id},receiver_id.eq.{contact_id}),"
        f"and(sender_id.eq.{contact_id},receiver_id.eq.{user_id})"
    )


def merge_messages(loaded, arrived):
    """Thread rows plus messages that arrived while they loaded, by id, in time order."""
    known = {row.get("id") for row in loaded}
    merged = list(loaded) + [m for m in arrived if m.get("id") not in known]
    merged.sort(key=lambda m: (m.get("created_at") is None, m.get("created_at") or ""))
    return merged


class Conversation:
    """Contacts, the selected thread and the realtime inbox for one user."""

    def __init__(self, backend, session, notifier=None, on_change=None):
        self.backend = backend
        self.session = session
        self.notifier = notifier or Notifier()
        self.contacts = []
        self.contact = None
        self.messages = []
        self.draft = ""
        self.loading = False
        self._channel = None
        self._temp_counter = 0
        self._requests = RequestSequence()
        self._listeners = [on_change] if on_change else []

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self)

    async def load_contacts(self):
        """Students of the teacher's classes, or the teacher of a student's class."""
        user_id = self.session.user_id
        try:
            if self.session.role == "student":
                classes = await self.backend.query(
                    "classes", columns="teacher_id",
                    filters={"id": self.session.identity.class_id},
                )
                teacher_ids = [c["teacher_id"] for c in classes if c.get("teacher_id")]
                contacts = []
                if teacher_ids:
                    contacts = await self.backend.query(
                        "users", columns="id, full_name, email, role",
                        filters={"id": teacher_ids}, order="full_name",
                    )
            else:
                classes = await self.backend.query(
                    "classes", columns="id", filters={"teacher_id": user_id},
                )
                contacts = []
                if classes:
                    contacts = await self.backend.query(
                        "users", columns="id, full_name, email, role",
                        filters={"class_id": [c["id"] for c in classes], "role": "student"},
                        order="full_name",
                    )
        except BackendError as ex:
            logger.error("Failed to load contacts: %s", ex.message)
            self.notifier.show("Failed to load contacts", "error")
            return self.contacts
        unique = {}
        for contact in contacts:
            unique.setdefault(contact["id"], contact)
        self.contacts = list(unique.values())
        self._emit()
        return self.contacts

    async def start(self):
        """Subscribe to messages addressed to the signed-in user."""
        if self._channel is not None:
            return
        self._channel = await self.backend.subscribe_inserts(
            f"direct_messages:{self.session.user_id}",
            "direct_messages",
            f"receiver_id=eq.{self.session.user_id}",
            self.receive,
        )

    async def select(self, contact):
        """Open the thread with ``contact``; a later selection wins."""
        self.contact = contact
        self.messages = []
        seq = self._requests.next()
        self.loading = True
        self._emit()
        try:
            rows = await self.backend.query(
                "direct_messages",
                or_filter=thread_filter(self.session.user_id, contact["id"]),
                order="created_at",
            )
        except BackendError as ex:
            if self._requests.is_current(seq):
                logger.error("Failed to load messages: %s", ex.message)
                self.loading = False
                self.notifier.show("Failed to load messages", "error")
                self._emit()
            return
        if not self._requests.is_current(seq):
            return
        self.messages = merge_messages(rows, self.messages)
        self.loading = False
        self._emit()

    def receive(self, row):
        """Realtime insert callback."""
        if self._requests.closed or self.contact is None:
            return
        if row.get("sender_id") != self.contact["id"]:
            return
        if any(message.get("id") == row.get("id") for message in self.messages):
            return
        self.messages.append(row)
        self._emit()

    async def send(self, text=None):
        """Send ``text`` (or the draft) to the selected contact."""
        content = (self.draft if text is None else text).strip()
        if not content or self.contact is None:
            return False
        self._temp_counter += 1
        temp_id = f"temp-{self._temp_counter}"
        payload = {
            "sender_id": self.session.user_id,
            "receiver_id": self.contact["id"],
            "content": content,
            "read": False,
        }
        self.messages.append({
            **payload, "id": temp_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        if text is None:
            self.draft = ""
        self._emit()
        try:
            rows = await self.backend.insert("direct_messages", [payload])
        except BackendError as ex:
            logger.error("Failed to send message: %s", ex.message)
            self.messages = [m for m in self.messages if m.get("id") != temp_id]
            self.notifier.show("Failed to send message", "error")
            self._emit()
            return False
        stored = rows[0] if rows else None
        if stored is not None:
            if any(m.get("id") == stored.get("id") for m in self.messages):
                self.messages = [m for m in self.messages if m.get("id") != temp_id]
            else:
                self.messages = [stored if m.get("id") == temp_id else m for m in self.messages]
            self._emit()
        return True

    async def close(self):
        self._requests.close()
        self._listeners.clear()
        if self._channel is not None:
            channel, self._channel = self._channel, None
            await self.backend.unsubscribe(channel)
