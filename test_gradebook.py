#!/usr/bin/env python3
"""
Test suite for the gradebook.
"""

import os
import sys
import unittest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from fake_backend import FakeBackend
from school_portal.gradebook import Gradebook, parse_grade
from school_portal.notifier import Notifier


TABLES = {
    "users": [
        {"id": "s1", "role": "student", "class_id": 3, "full_name": "Esi"},
        {"id": "s2", "role": "student", "class_id": 3, "full_name": "Yaw"},
    ],
    "assignments": [
        {"id": "a1", "class_id": 3, "title": "Essay", "points": 50, "due_date": "2024-09-10"},
        {"id": "a2", "class_id": 3, "title": "Quiz", "points": 10, "due_date": "2024-09-20"},
        {"id": "a9", "class_id": 4, "title": "Other", "points": 10, "due_date": "2024-09-20"},
    ],
    "submissions": [
        {"id": 1, "assignment_id": "a1", "student_id": "s1", "grade": 40},
        {"id": 2, "assignment_id": "a2", "student_id": "s1", "grade": 5},
        {"id": 3, "assignment_id": "a1", "student_id": "s2", "grade": 30},
        {"id": 4, "assignment_id": "a9", "student_id": "s2", "grade": 1},
    ],
}


class TestParseGrade(unittest.TestCase):

    def test_parse(self):
        self.assertEqual(parse_grade(" 42 "), 42)
        self.assertIsNone(parse_grade(""))
        with self.assertRaises(ValueError):
            parse_grade("4.5")


class TestGradebook(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend(TABLES)
        self.notifier = Notifier(duration_ms=0)
        self.book = Gradebook(self.backend, self.notifier)

    async def test_01_load(self):
        """Test 1: Grades for the class's assignments only"""
        print("\n=== Test 1: Load Gradebook ===")
        await self.book.load(3)
        self.assertEqual([a["id"] for a in self.book.assignments], ["a1", "a2"])
        self.assertEqual(self.book.grades, {("s1", "a1"): 40, ("s1", "a2"): 5, ("s2", "a1"): 30})
        (call,) = self.backend.calls_to("query", "submissions")
        self.assertEqual(call[2], {"assignment_id": ["a1", "a2"]})
        print("✓ 3 grades loaded")

    async def test_02_averages(self):
        """Test 2: Point-weighted averages"""
        await self.book.load(3)
        self.assertEqual(self.book.student_average("s1"), 65)
        self.assertEqual(self.book.student_average("s2"), 60)
        self.assertEqual(self.book.assignment_average("a1"), 35)
        self.assertEqual(self.book.class_average(), 62)

    async def test_03_save_grade(self):
        """Test 3: Grade upsert keyed by assignment and student"""
        await self.book.load(3)
        self.assertTrue(await self.book.save_grade("s2", "a2", "8"))
        (call,) = self.backend.calls_to("upsert", "submissions")
        self.assertEqual(call[2], [{"assignment_id": "a2", "student_id": "s2",
                                    "grade": 8, "status": "graded"}])
        self.assertEqual(call[3], "assignment_id,student_id")
        self.assertEqual(self.book.grades[("s2", "a2")], 8)

    async def test_04_invalid_grade(self):
        """Test 4: Non-numeric grade is rejected before the backend"""
        await self.book.load(3)
        self.assertFalse(await self.book.save_grade("s1", "a1", "A+"))
        self.assertEqual(self.notifier.toast.kind, "warning")
        self.assertEqual(self.book.grades[("s1", "a1")], 40)
        self.assertEqual(self.backend.calls_to("upsert"), [])

    async def test_05_save_failure(self):
        """Test 5: Backend rejection restores the grade and shows an error toast"""
        print("\n=== Test 5: Failed Grade Save ===")
        await self.book.load(3)
        self.backend.fail("upsert", "submissions", "forbidden")
        self.assertFalse(await self.book.save_grade("s1", "a1", "90"))
        self.assertEqual(self.notifier.toast.message, "Failed to save grade: forbidden")
        self.assertFalse(self.book.saving)
        self.assertEqual(self.book.grades[("s1", "a1")], 40)
        self.assertEqual(self.book.student_average("s1"), 65)
        print("✓ Grade 40 kept after the rejected save")

    async def test_05b_failed_first_grade_is_removed(self):
        """Test 5b: A rejected first grade leaves the cell empty"""
        await self.book.load(3)
        self.backend.fail("upsert", "submissions")
        self.assertFalse(await self.book.save_grade("s2", "a2", "7"))
        self.assertNotIn(("s2", "a2"), self.book.grades)
        self.assertEqual(self.book.student_average("s2"), 60)

    async def test_06_empty_class(self):
        """Test 6: No submissions query without assignments"""
        await self.book.load(99)
        self.assertEqual(self.backend.calls_to("query", "submissions"), [])
        self.assertIsNone(self.book.class_average())


if __name__ == "__main__":
    unittest.main()
