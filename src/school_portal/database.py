"""
Backend access for the School Portal.

All persistence, authentication, file storage and realtime notifications live
in a hosted Supabase project. This module wraps the async Supabase client in a
small gateway exposing the verbs the rest of the app uses: query, insert,
update, delete, upsert, upload, subscribe and the auth calls. Every failure
(constraint violation, permission denial, transport error) is raised as a
single ``BackendError`` carrying a human-readable message.
"""

import logging
import uuid

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from .config import STORAGE_BUCKET, SUPABASE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A failed backend call; ``message`` is safe to show to the user."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message or "Unexpected backend error"


def _apply_filters(request, filters):
    """Apply ``{column: value}`` filters; list values become ``in`` filters."""
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            request = request.in_(column, list(value))
        elif value is None:
            request = request.is_(column, "null")
        else:
            request = request.eq(column, value)
    return request


def _record_from_payload(payload):
    """Extract the inserted row from a realtime change payload."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data") or {}
    return data.get("record") or payload.get("new") or payload.get("record")


class Backend:
    """Gateway over a Supabase ``AsyncClient``."""

    def __init__(self, client: AsyncClient, bucket: str = STORAGE_BUCKET):
        self._client = client
        self._bucket = bucket

    @classmethod
    async def connect(cls, url: str = SUPABASE_URL, key: str = SUPABASE_KEY):
        """Create the Supabase client for ``url``/``key``."""
        if not url or not key:
            raise BackendError("SUPABASE_URL and SUPABASE_KEY must be configured")
        try:
            client = await acreate_client(url, key)
        except Exception as ex:
            logger.error("Could not create Supabase client for %s: %s", url, ex)
            raise BackendError(f"Could not connect to backend: {ex}") from ex
        logger.info("Connected to backend at %s", url)
        return cls(client)

    async def _execute(self, action, collection, request):
        try:
            response = await request.execute()
        except APIError as ex:
            logger.error("%s on %s rejected: %s", action, collection, ex.message)
            raise BackendError(ex.message or str(ex)) from ex
        except httpx.HTTPError as ex:
            logger.error("%s on %s failed: %s", action, collection, ex)
            raise BackendError(f"Network error: {ex}") from ex
        return response.data or []

    # ------------------------------------------------------------------
    # Table verbs
    # ------------------------------------------------------------------
    async def query(self, collection, columns="*", filters=None, ilike=None,
                    or_filter=None, order=None, descending=False, limit=None):
        """Read rows from ``collection``, in server order."""
        request = self._client.table(collection).select(columns)
        request = _apply_filters(request, filters)
        for column, pattern in (ilike or {}).items():
            request = request.ilike(column, pattern)
        if or_filter:
            request = request.or_(or_filter)
        if order:
            request = request.order(order, desc=descending)
        if limit:
            request = request.limit(limit)
        return await self._execute("query", collection, request)

    async def insert(self, collection, rows):
        """Insert one row (dict) or many (list); returns the stored rows."""
        return await self._execute(
            "insert", collection, self._client.table(collection).insert(rows)
        )

    async def update(self, collection, match, payload):
        """Update rows matching ``match`` with ``payload``."""
        request = _apply_filters(self._client.table(collection).update(payload), match)
        return await self._execute("update", collection, request)

    async def delete(self, collection, match):
        """Delete rows matching ``match``."""
        request = _apply_filters(self._client.table(collection).delete(), match)
        return await self._execute("delete", collection, request)

    async def upsert(self, collection, rows, on_conflict):
        """Insert or update rows, resolving conflicts on ``on_conflict`` columns."""
        request = self._client.table(collection).upsert(rows, on_conflict=on_conflict)
        return await self._execute("upsert", collection, request)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    async def upload(self, path, content: bytes, content_type=None):
        """Upload ``content`` to ``path`` in the storage bucket; returns its public URL."""
        bucket = self._client.storage.from_(self._bucket)
        options = {"content-type": content_type} if content_type else None
        try:
            if options:
                await bucket.upload(path, content, options)
            else:
                await bucket.upload(path, content)
            url = await bucket.get_public_url(path)
        except httpx.HTTPError as ex:
            logger.error("Upload of %s failed: %s", path, ex)
            raise BackendError(f"Network error: {ex}") from ex
        except Exception as ex:
            logger.error("Upload of %s rejected: %s", path, ex)
            raise BackendError(f"Upload failed: {ex}") from ex
        return url

    @staticmethod
    def unique_path(folder, filename):
        """Build a collision-free storage path for ``filename``."""
        return f"{folder}/{uuid.uuid4().hex[:8]}_{filename}"

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------
    async def subscribe_inserts(self, channel_name, collection, row_filter, callback):
        """Call ``callback(row)`` for every row inserted into ``collection``.

        ``row_filter`` uses the realtime filter syntax, e.g.
        ``"receiver_id=eq.<uuid>"``. Returns the channel for ``unsubscribe``.
        """
        def on_insert(payload):
            record = _record_from_payload(payload)
            if record is not None:
                callback(record)

        channel = self._client.channel(channel_name)
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table=collection,
            filter=row_filter,
            callback=on_insert,
        )
        try:
            await channel.subscribe()
        except Exception as ex:
            logger.error("Subscription to %s failed: %s", collection, ex)
            raise BackendError(f"Realtime subscription failed: {ex}") from ex
        return channel

    async def unsubscribe(self, channel):
        await self._client.remove_channel(channel)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    async def sign_in(self, email, password):
        """Sign in with email/password; returns the user id."""
        try:
            response = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except httpx.HTTPError as ex:
            raise BackendError(f"Network error: {ex}") from ex
        except Exception as ex:
            logger.warning("Sign-in failed for %s: %s", email, ex)
            raise BackendError(getattr(ex, "message", None) or str(ex)) from ex
        if response.user is None:
            raise BackendError("Invalid email or password")
        return response.user.id

    async def current_user_id(self):
        """Return the signed-in user's id, or ``None`` when signed out."""
        try:
            response = await self._client.auth.get_user()
        except Exception as ex:
            logger.error("Could not read current user: %s", ex)
            raise BackendError(str(ex)) from ex
        if response is None or response.user is None:
            return None
        return response.user.id

    async def sign_out(self):
        try:
            await self._client.auth.sign_out()
        except Exception as ex:
            logger.error("Sign-out failed: %s", ex)
            raise BackendError(str(ex)) from ex
