"""
Generic list/detail CRUD controller.

Every screen of the portal follows the same lifecycle: fetch a collection when
it is shown (and again whenever its server-side filters change), keep it in
local state, narrow it with search text and a category select, and run
create / edit / delete through a modal with toast feedback. ``ResourceList``
implements that lifecycle once; screens only configure it.

Loads are sequence-numbered. Each call to ``load`` takes the next number and
a response is applied only if its number is still the latest issued, so a
slow earlier request can never overwrite a newer one. After ``dispose`` no
response is applied at all.
"""

import logging

from .database import BackendError
from .models import FilterState, ListState, MutationIntent
from .notifier import Notifier
from .validation import parse_numbers, validate

logger = logging.getLogger(__name__)


def resolve(row, path):
    """Read a dotted ``path`` from a row, following joined rows."""
    value = row
    for part in path.split("."):
        if isinstance(value, list):
            value = value[0] if value else None
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def matches_search(row, search_text, search_fields):
    needle = (search_text or "").strip().lower()
    if not needle:
        return True
    for field in search_fields:
        value = resolve(row, field)
        if value is not None and needle in str(value).lower():
            return True
    return False


def matches_category(row, category_field, category):
    if not category_field or category in (None, "", "all"):
        return True
    return str(resolve(row, category_field)) == str(category)


def _sort_value(value):
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value).lower())


def project(rows, filter_state, search_fields=(), category_field=None):
    """Filtered and optionally sorted view of ``rows``; ``rows`` is untouched."""
    visible = [
        row for row in rows
        if matches_search(row, filter_state.search_text, search_fields)
        and matches_category(row, category_field, filter_state.category)
    ]
    if filter_state.sort_key:
        visible.sort(
            key=lambda row: _sort_value(resolve(row, filter_state.sort_key)),
            reverse=filter_state.sort_descending,
        )
    return visible


class RequestSequence:
    """Numbers requests so only the response to the latest one is applied."""

    def __init__(self):
        self.latest = 0
        self.closed = False

    def next(self):
        self.latest += 1
        return self.latest

    def is_current(self, number):
        return not self.closed and number == self.latest

    def close(self):
        self.closed = True


class ResourceList:
    """Fetch / mutate / feedback lifecycle for one collection on one screen."""

    def __init__(self, backend, collection, *, columns="*", filters=None,
                 order=None, descending=False, search_fields=(),
                 category_field=None, rules=(), numeric_fields=(),
                 read_only_fields=(), defaults=None, delete_guard=None,
                 local_delete=False, key="id", label=None, noun=None,
                 notifier=None, on_change=None):
        self.backend = backend
        self.collection = collection
        self.columns = columns
        self.filters = dict(filters or {})
        self.order = order
        self.descending = descending
        self.search_fields = tuple(search_fields)
        self.category_field = category_field
        self.rules = tuple(rules)
        self.numeric_fields = tuple(numeric_fields)
        self.read_only_fields = frozenset(read_only_fields)
        self.defaults = dict(defaults or {})
        self.delete_guard = delete_guard
        self.local_delete = local_delete
        self.key = key
        self.label = label or collection.replace("_", " ")
        self.noun = noun or self.label.rstrip("s")
        self.notifier = notifier or Notifier()

        self.state = ListState()
        self.filter = FilterState()
        self.intent = MutationIntent()

        self._listeners = [on_change] if on_change else []
        self._requests = RequestSequence()
        self._version = 0
        self._view_key = None
        self._view = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self)

    @property
    def _disposed(self):
        return self._requests.closed

    @property
    def disposed(self):
        return self._disposed

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------
    async def load(self, filters=None):
        """Fetch the collection; ``filters`` replaces the server-side filters."""
        if self._disposed:
            return self.state
        if filters is not None:
            self.filters = dict(filters)
        seq = self._requests.next()
        self.state.loading = True
        self._emit()

        try:
            rows = await self.backend.query(
                self.collection,
                columns=self.columns,
                filters=self.filters,
                order=self.order,
                descending=self.descending,
            )
        except BackendError as ex:
            if not self._requests.is_current(seq):
                return self.state
            logger.error("Failed to load %s: %s", self.collection, ex.message)
            self.state.error = ex.message
            self.state.loading = False
            self.notifier.show(f"Failed to load {self.label}", "error")
            self._emit()
            return self.state

        if not self._requests.is_current(seq):
            logger.debug("Discarded stale %s response #%d (latest #%d)",
                         self.collection, seq, self._requests.latest)
            return self.state

        self.state.items = list(rows or [])
        self.state.error = None
        self.state.loading = False
        self.state.fetched = True
        self._version += 1
        self._emit()
        return self.state

    # ------------------------------------------------------------------
    # Client-side narrowing
    # ------------------------------------------------------------------
    @property
    def visible_items(self):
        """Search/category/sort projection, recomputed only when an input changes."""
        view_key = (
            self._version,
            (self.filter.search_text or "").strip().lower(),
            str(self.filter.category),
            self.filter.sort_key,
            self.filter.sort_descending,
        )
        if view_key != self._view_key:
            self._view = project(self.state.items, self.filter,
                                 self.search_fields, self.category_field)
            self._view_key = view_key
        return self._view

    def set_search(self, text):
        self.filter.search_text = text or ""
        self._emit()

    def set_category(self, category):
        self.filter.category = category if category not in (None, "") else "all"
        self._emit()

    def set_sort(self, sort_key, descending=False):
        self.filter.sort_key = sort_key
        self.filter.sort_descending = descending
        self._emit()

    def find(self, row_id):
        for row in self.state.items:
            if row.get(self.key) == row_id:
                return row
        return None

    # ------------------------------------------------------------------
    # Mutation intent
    # ------------------------------------------------------------------
    def open_create(self):
        self.intent = MutationIntent(mode="create", modal_open=True)
        self._emit()

    def open_edit(self, item):
        self.intent = MutationIntent(mode="edit", target=item, modal_open=True)
        self._emit()

    def close_modal(self):
        self.intent = MutationIntent()
        self._emit()

    def request_delete(self, item):
        self.intent = MutationIntent(mode="delete", target=item, confirming_delete=True)
        self._emit()

    def cancel_delete(self):
        self.close_modal()

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------
    async def create(self, payload):
        return await self._submit("create", None, payload)

    async def update(self, row_id, payload):
        return await self._submit("edit", row_id, payload)

    async def save(self, payload):
        """Create or update depending on the open intent."""
        if self.intent.mode == "edit" and self.intent.target is not None:
            return await self.update(self.intent.target[self.key], payload)
        return await self.create(payload)

    async def _submit(self, mode, row_id, payload):
        if self._disposed or self.intent.submitting:
            return False

        errors = validate(payload, self.rules)
        if errors:
            self.intent.field_errors = errors
            self.intent.error = None
            self._emit()
            return False

        data = parse_numbers(payload, self.numeric_fields)
        if mode == "edit":
            data = {k: v for k, v in data.items() if k not in self.read_only_fields}
        else:
            data = {**self.defaults, **data}

        self.intent.field_errors = {}
        self.intent.error = None
        self.intent.submitting = True
        self._emit()

        try:
            if mode == "create":
                await self.backend.insert(self.collection, [data])
            else:
                await self.backend.update(self.collection, {self.key: row_id}, data)
        except BackendError as ex:
            logger.error("Failed to save %s: %s", self.noun, ex.message)
            if not self._disposed:
                self.intent.submitting = False
                self.intent.error = ex.message
                self._emit()
            return False

        if self._disposed:
            return True
        self.intent = MutationIntent()
        done = "created" if mode == "create" else "updated"
        self.notifier.show(f"{self.noun.capitalize()} {done} successfully!", "success")
        await self.load()
        return True

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    async def confirm_delete(self):
        target = self.intent.target
        if not self.intent.confirming_delete or target is None:
            return False
        return await self.remove(target[self.key])

    async def remove(self, row_id):
        """Delete ``row_id``; only after ``request_delete`` for the same row."""
        if self._disposed or self.intent.submitting:
            return False
        target = self.intent.target if self.intent.confirming_delete else None
        if target is None or target.get(self.key) != row_id:
            logger.warning("Delete of %s %s requested without confirmation", self.noun, row_id)
            return False

        if self.delete_guard is not None:
            reason = self.delete_guard(self.find(row_id) or target)
            if reason:
                self.intent = MutationIntent()
                self.notifier.show(reason, "error")
                self._emit()
                return False

        self.intent.submitting = True
        self._emit()
        try:
            await self.backend.delete(self.collection, {self.key: row_id})
        except BackendError as ex:
            logger.error("Failed to delete %s %s: %s", self.noun, row_id, ex.message)
            if not self._disposed:
                self.intent = MutationIntent()
                self.notifier.show(f"Failed to delete {self.noun}: {ex.message}", "error")
                self._emit()
            return False

        if self._disposed:
            return True
        self.intent = MutationIntent()
        self.notifier.show(f"{self.noun.capitalize()} deleted successfully!", "success")
        if self.local_delete:
            self.drop_local(row_id)
        else:
            await self.load()
        return True

    # ------------------------------------------------------------------
    # Local patching, for rows without server-derived fields
    # ------------------------------------------------------------------
    def patch_local(self, row_id, changes):
        self.state.items = [
            {**row, **changes} if row.get(self.key) == row_id else row
            for row in self.state.items
        ]
        self._version += 1
        self._emit()

    def drop_local(self, row_id):
        self.state.items = [row for row in self.state.items if row.get(self.key) != row_id]
        self._version += 1
        self._emit()

    def dispose(self):
        """Stop applying responses; called when the screen is unmounted."""
        self._requests.close()
        self.state = ListState()
        self.intent = MutationIntent()
        self._listeners.clear()
