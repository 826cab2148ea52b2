"""
Shared dependencies of the sections mounted in one view.
"""

import logging

logger = logging.getLogger(__name__)


class SectionContext:
    """Backend, session and notifier of a page, plus what to dispose on unmount."""

    def __init__(self, page, backend, session, notifier):
        self.page = page
        self.backend = backend
        self.session = session
        self.notifier = notifier
        self._mounted = []

    def track(self, controller):
        """Register a controller to be disposed when the view changes."""
        self._mounted.append(controller)
        return controller

    def dispose(self):
        mounted, self._mounted = self._mounted, []
        for controller in mounted:
            if getattr(controller, "disposed", False):
                continue
            if hasattr(controller, "close"):
                self.page.run_task(controller.close)
            else:
                controller.dispose()
        logger.debug("Disposed %d controllers", len(mounted))
