"""
Per-class report for teachers: average grade, attendance rate and behaviour.

Grades are averaged as ``grade / points * 100`` over graded submissions of the
class's assignments. Behaviour is counted for the students of the class, so
records saved without a ``class_id`` are still included.
"""

import logging

from .aggregates import count_where, percentage, to_number
from .controller import RequestSequence
from .database import BackendError
from .notifier import Notifier
from .resources import signed_behavior_points

logger = logging.getLogger(__name__)


def summarize_class(assignments, submissions, attendance, behavior):
    points = {a["id"]: to_number(a.get("points")) or 100 for a in assignments}
    graded = [
        s for s in submissions
        if s.get("assignment_id") in points and s.get("grade") not in (None, "")
    ]
    average = None
    if graded:
        average = round(sum(
            to_number(s["grade"]) / points[s["assignment_id"]] * 100 for s in graded
        ) / len(graded))

    positive = count_where(behavior, "type", "positive")
    negative = count_where(behavior, "type", "negative")
    return {
        "average_grade": average,
        "graded": len(graded),
        "assignments": len(assignments),
        "attendance_rate": percentage(count_where(attendance, "status", "present"), len(attendance)),
        "attendance_records": len(attendance),
        "positive": positive,
        "negative": negative,
        "behavior_total": positive + negative,
        "positive_rate": percentage(positive, positive + negative),
        "behavior_points": sum(
            signed_behavior_points(r.get("type"), r.get("points")) for r in behavior
        ),
    }


class ClassReport:
    """Loads and summarizes one class; only the latest class selection is applied."""

    def __init__(self, backend, notifier=None, on_change=None):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.class_id = None
        self.summary = None
        self.loading = False
        self.error = None
        self._requests = RequestSequence()
        self._listeners = [on_change] if on_change else []

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self)

    async def load(self, class_id):
        seq = self._requests.next()
        self.loading = True
        self._emit()
        try:
            assignments = await self.backend.query(
                "assignments", columns="id, points", filters={"class_id": class_id},
            )
            submissions = []
            if assignments:
                submissions = await self.backend.query(
                    "submissions", columns="assignment_id, grade",
                    filters={"assignment_id": [a["id"] for a in assignments], "status": "graded"},
                )
            attendance = await self.backend.query(
                "attendance", columns="status", filters={"class_id": class_id},
            )
            students = await self.backend.query(
                "users", columns="id", filters={"class_id": class_id, "role": "student"},
            )
            behavior = []
            if students:
                behavior = await self.backend.query(
                    "behavior_records", columns="type, points",
                    filters={"student_id": [s["id"] for s in students]},
                )
        except BackendError as ex:
            if self._requests.is_current(seq):
                logger.error("Failed to load report for class %s: %s", class_id, ex.message)
                self.error = ex.message
                self.loading = False
                self.notifier.show("Failed to load report", "error")
                self._emit()
            return
        if not self._requests.is_current(seq):
            logger.debug("Discarded stale report for class %s", class_id)
            return
        self.class_id = class_id
        self.summary = summarize_class(assignments, submissions, attendance, behavior)
        self.error = None
        self.loading = False
        self._emit()

    def dispose(self):
        self._requests.close()
        self._listeners.clear()
