#!/usr/bin/env python3
"""
Test suite for the attendance sheet.
"""

import asyncio
import os
import sys
import unittest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from fake_backend import FakeBackend
from school_portal.attendance import AttendanceSheet
from school_portal.models import Identity
from school_portal.notifier import Notifier


class StubSession:
    def __init__(self, user_id="t1", role="teacher"):
        self.identity = Identity(user_id, role)

    @property
    def user_id(self):
        return self.identity.user_id


TABLES = {
    "users": [
        {"id": "s1", "role": "student", "class_id": 1, "full_name": "Esi"},
        {"id": "s2", "role": "student", "class_id": 1, "full_name": "Abena"},
        {"id": "s3", "role": "student", "class_id": 2, "full_name": "Yaw"},
    ],
    "attendance": [
        {"id": 1, "student_id": "s1", "class_id": 1, "date": "2024-09-02", "status": "absent",
         "student": {"full_name": "Esi"}},
    ],
}


class TestAttendanceSheet(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend(TABLES)
        self.notifier = Notifier(duration_ms=0)
        self.sheet = AttendanceSheet(self.backend, StubSession(), self.notifier)

    async def test_01_load(self):
        """Test 1: Students come sorted with their saved status"""
        print("\n=== Test 1: Load Attendance Sheet ===")
        await self.sheet.load(1, "2024-09-02")
        self.assertEqual([s["full_name"] for s in self.sheet.students], ["Abena", "Esi"])
        self.assertEqual(self.sheet.status_of("s1"), "absent")
        self.assertEqual(self.sheet.status_of("s2"), "present")
        self.assertFalse(self.sheet.loading)
        print("✓ Unmarked students default to present")

    async def test_02_mark(self):
        """Test 2: Marking single and all students"""
        await self.sheet.load(1, "2024-09-02")
        self.sheet.mark("s2", "late")
        self.assertEqual(self.sheet.status_of("s2"), "late")
        self.sheet.mark_all("present")
        self.assertEqual(set(self.sheet.statuses.values()), {"present"})
        with self.assertRaises(ValueError):
            self.sheet.mark("s1", "sleeping")

    async def test_03_save(self):
        """Test 3: One upsert keyed by student and date"""
        print("\n=== Test 3: Save Attendance ===")
        await self.sheet.load(1, "2024-09-02")
        self.sheet.mark("s2", "late")
        self.assertTrue(await self.sheet.save())

        (call,) = self.backend.calls_to("upsert", "attendance")
        rows, on_conflict = call[2], call[3]
        self.assertEqual(on_conflict, "student_id,date")
        self.assertEqual({row["student_id"]: row["status"] for row in rows},
                         {"s1": "absent", "s2": "late"})
        self.assertEqual({row["marked_by"] for row in rows}, {"t1"})
        self.assertEqual(self.notifier.toast.message, "Attendance saved successfully!")
        print("✓ Attendance upserted")

    async def test_04_save_failure(self):
        """Test 4: Failed save keeps the marks and reports the error"""
        await self.sheet.load(1, "2024-09-02")
        self.sheet.mark("s2", "late")
        self.backend.fail("upsert", "attendance", "permission denied")
        self.assertFalse(await self.sheet.save())
        self.assertEqual(self.notifier.toast.kind, "error")
        self.assertEqual(self.sheet.status_of("s2"), "late")
        self.assertFalse(self.sheet.saving)

    async def test_05_nothing_to_save(self):
        """Test 5: Save without a loaded class is a no-op"""
        self.assertFalse(await self.sheet.save())
        self.assertEqual(self.backend.calls, [])

    async def test_06_report(self):
        """Test 6: Daily report"""
        await self.sheet.load(1, "2024-09-02")
        summary = await self.sheet.report()
        self.assertEqual(summary["absent"], 1)
        self.assertEqual(summary["absentees"], [{"full_name": "Esi"}])

    async def test_07_latest_selection_wins(self):
        """Test 7: Slow response for an earlier class is discarded"""
        print("\n=== Test 7: Stale Response ===")
        self.backend.delay("users", 0.05, 0)
        await asyncio.gather(
            self.sheet.load(1, "2024-09-02"),
            self.sheet.load(2, "2024-09-02"),
        )
        self.assertEqual([s["id"] for s in self.sheet.students], ["s3"])
        self.assertEqual(self.sheet.class_id, 2)
        print("✓ Class 2 roster kept")

    async def test_08_load_failure(self):
        """Test 8: Load failure surfaces an error toast"""
        self.backend.fail("query", "users", "timeout")
        await self.sheet.load(1, "2024-09-02")
        self.assertEqual(self.sheet.error, "timeout")
        self.assertEqual(self.notifier.toast.message, "Failed to load attendance")

    async def test_09_disposed_sheet_ignores_responses(self):
        """Test 9: Responses after dispose are dropped"""
        self.backend.delay("users", 0.02)
        task = asyncio.ensure_future(self.sheet.load(1, "2024-09-02"))
        await asyncio.sleep(0)
        self.sheet.dispose()
        await task
        self.assertEqual(self.sheet.students, [])

    async def test_10_no_save_while_switching_class(self):
        """Test 10: Saving during a class switch never mixes rosters"""
        print("\n=== Test 10: Save During Class Switch ===")
        await self.sheet.load(1, "2024-09-02")
        self.backend.delay("users", 0.05)
        switch = asyncio.ensure_future(self.sheet.load(2, "2024-09-02"))
        await asyncio.sleep(0)

        self.assertTrue(self.sheet.loading)
        self.assertEqual(self.sheet.class_id, 1)
        self.assertFalse(await self.sheet.save())
        self.assertEqual(self.backend.calls_to("upsert"), [])

        await switch
        self.assertTrue(await self.sheet.save())
        (call,) = self.backend.calls_to("upsert", "attendance")
        self.assertEqual([(row["student_id"], row["class_id"]) for row in call[2]], [("s3", 2)])
        print("✓ Only class 2's roster saved under class 2")

    async def test_11_no_save_after_failed_switch(self):
        """Test 11: A failed class switch keeps the old class and blocks saving"""
        await self.sheet.load(1, "2024-09-02")
        self.backend.fail("query", "users", "timeout")
        await self.sheet.load(2, "2024-09-02")

        self.assertEqual(self.sheet.class_id, 1)
        self.assertEqual(self.sheet.error, "timeout")
        self.assertFalse(await self.sheet.save())
        self.assertEqual(self.backend.calls_to("upsert"), [])

        await self.sheet.load(2, "2024-09-02")
        self.assertIsNone(self.sheet.error)
        self.assertTrue(await self.sheet.save())


if __name__ == "__main__":
    unittest.main()
