from typing import Optional


class ListState:
    """One screen's working copy of a backend collection."""
    def __init__(self, items=None, loading: bool = False, error: Optional[str] = None):
        self.items = list(items or [])
        self.loading = loading
        self.error = error
        self.fetched = False

    @property
    def phase(self):
        """idle -> loading -> loaded | errored."""
        if self.loading:
            return "loading"
        if self.error:
            return "errored"
        if self.fetched:
            return "loaded"
        return "idle"


class FilterState:
    """Client-side narrowing criteria; never sent to the backend."""
    def __init__(self, search_text: str = "", category: str = "all",
                 sort_key: Optional[str] = None, sort_descending: bool = False):
        self.search_text = search_text
        self.category = category
        self.sort_key = sort_key
        self.sort_descending = sort_descending


class MutationIntent:
    """Pending create/edit/delete action for a screen."""
    def __init__(self, mode: Optional[str] = None, target: Optional[dict] = None,
                 modal_open: bool = False, confirming_delete: bool = False):
        self.mode = mode
        self.target = target
        self.modal_open = modal_open
        self.confirming_delete = confirming_delete
        self.submitting = False
        self.error: Optional[str] = None
        self.field_errors: dict = {}


class ToastState:
    """Transient user feedback."""
    def __init__(self, message: str = "", kind: str = "success", visible: bool = False):
        self.message = message
        self.kind = kind
        self.visible = visible


class Identity:
    """The signed-in user, as seen by every scoped query."""
    def __init__(self, user_id: str, role: Optional[str] = None,
                 full_name: str = "", email: str = "", class_id=None):
        self.user_id = user_id
        self.role = role
        self.full_name = full_name
        self.email = email
        self.class_id = class_id

    @classmethod
    def from_profile(cls, profile: dict):
        return cls(
            user_id=profile["id"],
            role=profile.get("role"),
            full_name=profile.get("full_name") or "",
            email=profile.get("email") or "",
            class_id=profile.get("class_id"),
        )
