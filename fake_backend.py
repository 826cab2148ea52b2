"""
In-memory stand-in for ``school_portal.database.Backend`` used by the tests.

Implements the same verbs over plain lists of dicts, with per-call delays
and injected failures so ordering and error paths can be exercised.
"""

import asyncio
import copy
import itertools
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from school_portal.database import BackendError


def _matches(row, filters):
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            if row.get(column) not in value:
                return False
        elif value is None:
            if row.get(column) is not None:
                return False
        elif str(row.get(column)) != str(value):
            return False
    return True


def _split_top_level(text):
    parts, depth, current = [], 0, ""
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    if current:
        parts.append(current)
    return parts


def _condition(row, expression):
    """``column.eq.value`` or ``and(cond,cond)``."""
    if expression.startswith("and(") and expression.endswith(")"):
        return all(_condition(row, part) for part in _split_top_level(expression[4:-1]))
    column, op, value = expression.split(".", 2)
    if op != "eq":
        raise ValueError(f"Unsupported operator in fake backend: {op}")
    return str(row.get(column)) == value


def _matches_or(row, or_filter):
    if not or_filter:
        return True
    return any(_condition(row, part) for part in _split_top_level(or_filter))


def _matches_ilike(row, ilike):
    for column, pattern in (ilike or {}).items():
        needle = pattern.strip("%").lower()
        if needle not in str(row.get(column) or "").lower():
            return False
    return True


def _row_filter_matches(row, row_filter):
    """Realtime filter ``column=eq.value``."""
    if not row_filter:
        return True
    column, _, expected = row_filter.partition("=eq.")
    return str(row.get(column)) == expected


class FakeBackend:
    """Gateway double: tables are ``{collection: [row, ...]}``."""

    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.calls = []
        self.delays = {}          # collection -> [seconds, ...] consumed per call
        self.failures = []        # [(verb, collection, message)] consumed on match
        self.uploads = {}
        self.accounts = {}        # email -> (password, user_id)
        self.user_id = None
        self.channels = []
        self._ids = itertools.count(1000)

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------
    def delay(self, collection, *seconds):
        self.delays.setdefault(collection, []).extend(seconds)

    def fail(self, verb, collection, message="Backend rejected the request"):
        self.failures.append((verb, collection, message))

    def calls_to(self, verb, collection=None):
        return [c for c in self.calls if c[0] == verb and (collection is None or c[1] == collection)]

    def emit_insert(self, collection, row):
        """Deliver a realtime insert to matching subscriptions."""
        for channel in list(self.channels):
            if channel["collection"] == collection and _row_filter_matches(row, channel["filter"]):
                channel["callback"](copy.deepcopy(row))

    async def _call(self, verb, collection, *args):
        self.calls.append((verb, collection) + args)
        pending = self.delays.get(collection)
        if pending:
            seconds = pending.pop(0)
            if seconds:
                await asyncio.sleep(seconds)
        for failure in self.failures:
            if failure[0] == verb and failure[1] == collection:
                self.failures.remove(failure)
                raise BackendError(failure[2])

    def _table(self, collection):
        return self.tables.setdefault(collection, [])

    # ------------------------------------------------------------------
    # Table verbs
    # ------------------------------------------------------------------
    async def query(self, collection, columns="*", filters=None, ilike=None,
                    or_filter=None, order=None, descending=False, limit=None):
        await self._call("query", collection, filters)
        rows = [
            copy.deepcopy(row) for row in self._table(collection)
            if _matches(row, filters) and _matches_ilike(row, ilike) and _matches_or(row, or_filter)
        ]
        if order:
            rows.sort(key=lambda row: (row.get(order) is None, str(row.get(order) or "")),
                      reverse=descending)
        if limit:
            rows = rows[:limit]
        return rows

    async def insert(self, collection, rows):
        rows = rows if isinstance(rows, list) else [rows]
        await self._call("insert", collection, copy.deepcopy(rows))
        stored = []
        for row in rows:
            record = {"id": next(self._ids), **row}
            self._table(collection).append(record)
            stored.append(copy.deepcopy(record))
        for record in stored:
            self.emit_insert(collection, record)
        return stored

    async def update(self, collection, match, payload):
        await self._call("update", collection, dict(match), dict(payload))
        updated = []
        for row in self._table(collection):
            if _matches(row, match):
                row.update(payload)
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, collection, match):
        await self._call("delete", collection, dict(match))
        table = self._table(collection)
        removed = [row for row in table if _matches(row, match)]
        self.tables[collection] = [row for row in table if not _matches(row, match)]
        return removed

    async def upsert(self, collection, rows, on_conflict):
        await self._call("upsert", collection, copy.deepcopy(rows), on_conflict)
        keys = [key.strip() for key in on_conflict.split(",")]
        stored = []
        for row in rows:
            existing = next(
                (r for r in self._table(collection) if all(r.get(k) == row.get(k) for k in keys)),
                None,
            )
            if existing is None:
                existing = {"id": next(self._ids), **row}
                self._table(collection).append(existing)
            else:
                existing.update(row)
            stored.append(copy.deepcopy(existing))
        return stored

    # ------------------------------------------------------------------
    # Storage, realtime, auth
    # ------------------------------------------------------------------
    async def upload(self, path, content, content_type=None):
        await self._call("upload", "storage", path, content_type)
        self.uploads[path] = content
        return f"https://storage.test/documents/{path}"

    @staticmethod
    def unique_path(folder, filename):
        return f"{folder}/fixed_{filename}"

    async def subscribe_inserts(self, channel_name, collection, row_filter, callback):
        await self._call("subscribe", collection, row_filter)
        channel = {"name": channel_name, "collection": collection,
                   "filter": row_filter, "callback": callback}
        self.channels.append(channel)
        return channel

    async def unsubscribe(self, channel):
        await self._call("unsubscribe", channel["collection"])
        self.channels.remove(channel)

    async def sign_in(self, email, password):
        await self._call("sign_in", "auth", email)
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise BackendError("Invalid login credentials")
        self.user_id = account[1]
        return self.user_id

    async def current_user_id(self):
        await self._call("current_user", "auth")
        return self.user_id

    async def sign_out(self):
        await self._call("sign_out", "auth")
        self.user_id = None
