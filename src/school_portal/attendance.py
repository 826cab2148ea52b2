"""
Attendance marking for a teacher's class.

The sheet reloads whenever the selected class or date changes; only the
response to the latest selection is applied.
"""

import logging

from .aggregates import attendance_summary
from .config import ATTENDANCE_STATUSES
from .controller import RequestSequence
from .database import BackendError
from .notifier import Notifier

logger = logging.getLogger(__name__)


class AttendanceSheet:
    """Students of one class with their attendance status for one date."""

    def __init__(self, backend, session, notifier=None, on_change=None):
        self.backend = backend
        self.session = session
        self.notifier = notifier or Notifier()
        self.class_id = None
        self.date = None
        self.students = []
        self.statuses = {}
        self.loading = False
        self.saving = False
        self.error = None
        self._requests = RequestSequence()
        self._listeners = [on_change] if on_change else []

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self)

    async def load(self, class_id, day):
        """Load the sheet for ``class_id`` on ``day``.

        ``class_id`` and ``date`` change only when this load's response is
        applied, so they always describe ``students``.
        """
        seq = self._requests.next()
        self.loading = True
        self._emit()
        try:
            students = await self.backend.query(
                "users",
                columns="id, full_name, roll_number",
                filters={"role": "student", "class_id": class_id},
                order="full_name",
            )
            marked = await self.backend.query(
                "attendance",
                columns="student_id, status",
                filters={"class_id": class_id, "date": day},
            )
        except BackendError as ex:
            if not self._requests.is_current(seq):
                return
            logger.error("Failed to load attendance for class %s: %s", class_id, ex.message)
            self.error = ex.message
            self.loading = False
            self.notifier.show("Failed to load attendance", "error")
            self._emit()
            return
        if not self._requests.is_current(seq):
            logger.debug("Discarded stale attendance response for class %s", class_id)
            return
        self.class_id = class_id
        self.date = day
        self.students = students
        self.statuses = {row["student_id"]: row["status"] for row in marked}
        self.error = None
        self.loading = False
        self._emit()

    def status_of(self, student_id):
        return self.statuses.get(student_id, "present")

    def mark(self, student_id, status):
        if status not in ATTENDANCE_STATUSES:
            raise ValueError(f"Unknown attendance status: {status}")
        self.statuses[student_id] = status
        self._emit()

    def mark_all(self, status):
        for student in self.students:
            self.mark(student["id"], status)

    async def save(self):
        """Upsert one row per student; unmarked students are saved as present.

        Refused while a load is in flight or after the last load failed.
        """
        if self.saving or not self.students or self.class_id is None:
            return False
        if self.loading or self.error:
            logger.warning("Attendance save refused: sheet for class %s is not current", self.class_id)
            return False
        rows = [
            {
                "student_id": student["id"],
                "class_id": self.class_id,
                "date": self.date,
                "status": self.status_of(student["id"]),
                "marked_by": self.session.user_id,
            }
            for student in self.students
        ]
        self.saving = True
        self._emit()
        try:
            await self.backend.upsert("attendance", rows, on_conflict="student_id,date")
        except BackendError as ex:
            logger.error("Failed to save attendance: %s", ex.message)
            self.notifier.show(f"Failed to save attendance: {ex.message}", "error")
            return False
        finally:
            self.saving = False
            self._emit()
        self.notifier.show("Attendance saved successfully!", "success")
        return True

    async def report(self, class_id=None, day=None):
        """Daily summary of the marked records for a class and date."""
        records = await self.backend.query(
            "attendance",
            columns="status, student_id, student:student_id(full_name, roll_number)",
            filters={"class_id": class_id or self.class_id, "date": day or self.date},
        )
        return attendance_summary(records)

    def dispose(self):
        self._requests.close()
        self._listeners.clear()
