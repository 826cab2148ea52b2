"""
Gradebook: students x assignments for one class.
"""

import logging

from . import aggregates
from .controller import RequestSequence
from .database import BackendError
from .notifier import Notifier

logger = logging.getLogger(__name__)


def parse_grade(value):
    """Grade text to int; blank clears the grade. Raises ``ValueError``."""
    if value is None or str(value).strip() == "":
        return None
    return int(str(value).strip())


class Gradebook:
    def __init__(self, backend, notifier=None, on_change=None):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.class_id = None
        self.students = []
        self.assignments = []
        self.grades = {}
        self.loading = False
        self.saving = False
        self._requests = RequestSequence()
        self._listeners = [on_change] if on_change else []

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _emit(self):
        for listener in list(self._listeners):
            listener(self)

    async def load(self, class_id):
        self.class_id = class_id
        seq = self._requests.next()
        self.loading = True
        self._emit()
        try:
            students = await self.backend.query(
                "users", columns="id, full_name, email",
                filters={"class_id": class_id, "role": "student"}, order="full_name",
            )
            assignments = await self.backend.query(
                "assignments", columns="id, title, type, points, due_date",
                filters={"class_id": class_id}, order="due_date",
            )
            submissions = []
            if students and assignments:
                submissions = await self.backend.query(
                    "submissions", columns="student_id, assignment_id, grade",
                    filters={"assignment_id": [a["id"] for a in assignments]},
                )
        except BackendError as ex:
            if self._requests.is_current(seq):
                logger.error("Failed to load gradebook for class %s: %s", class_id, ex.message)
                self.loading = False
                self.notifier.show("Failed to load gradebook", "error")
                self._emit()
            return
        if not self._requests.is_current(seq):
            return
        self.students = students
        self.assignments = assignments
        self.grades = {
            (row["student_id"], row["assignment_id"]): row.get("grade")
            for row in submissions
        }
        self.loading = False
        self._emit()

    async def save_grade(self, student_id, assignment_id, value):
        """Upsert one grade; invalid text or a failed upsert leaves the grade as it was."""
        try:
            grade = parse_grade(value)
        except ValueError:
            self.notifier.show("Grade must be a whole number", "warning")
            return False
        key = (student_id, assignment_id)
        had_grade = key in self.grades
        previous = self.grades.get(key)
        self.grades[key] = grade
        self.saving = True
        self._emit()
        try:
            await self.backend.upsert(
                "submissions",
                [{"assignment_id": assignment_id, "student_id": student_id,
                  "grade": grade, "status": "graded"}],
                on_conflict="assignment_id,student_id",
            )
        except BackendError as ex:
            logger.error("Failed to save grade: %s", ex.message)
            if had_grade:
                self.grades[key] = previous
            else:
                self.grades.pop(key, None)
            self.notifier.show(f"Failed to save grade: {ex.message}", "error")
            return False
        finally:
            self.saving = False
            self._emit()
        return True

    def student_average(self, student_id):
        return aggregates.student_average(self.grades, self.assignments, student_id)

    def assignment_average(self, assignment_id):
        return aggregates.assignment_average(self.grades, assignment_id)

    def class_average(self):
        averages = [
            avg for avg in (self.student_average(s["id"]) for s in self.students)
            if avg is not None
        ]
        if not averages:
            return None
        return round(sum(averages) / len(averages))

    def dispose(self):
        self._requests.close()
        self._listeners.clear()
