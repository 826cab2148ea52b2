"""
Toast notifications shared by the sections of one page.
"""

import asyncio
import logging

from .config import TOAST_DURATION_MS
from .models import ToastState

logger = logging.getLogger(__name__)

TOAST_KINDS = ("success", "error", "warning", "info")


class Notifier:
    """Holds the current toast and hides it after ``duration_ms``."""

    def __init__(self, duration_ms: int = TOAST_DURATION_MS):
        self.duration_ms = duration_ms
        self.toast = ToastState()
        self._listeners = []
        self._timer = None

    def subscribe(self, listener):
        """Register ``listener(toast)``, called on every show/hide."""
        self._listeners.append(listener)

    def show(self, message: str, kind: str = "success"):
        if kind not in TOAST_KINDS:
            raise ValueError(f"Unknown toast kind: {kind}")
        if kind == "error":
            logger.info("Error toast: %s", message)
        self._cancel_timer()
        self.toast = ToastState(message, kind, visible=True)
        if self.duration_ms > 0:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            # Without a running loop the toast stays until hide() is called.
            if loop is not None:
                self._timer = loop.call_later(self.duration_ms / 1000, self.hide)
        self._emit()

    def hide(self):
        self._cancel_timer()
        if not self.toast.visible:
            return
        self.toast = ToastState(self.toast.message, self.toast.kind, visible=False)
        self._emit()

    def dispose(self):
        self._cancel_timer()
        self._listeners.clear()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self):
        for listener in list(self._listeners):
            listener(self.toast)
