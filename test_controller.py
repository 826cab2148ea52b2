#!/usr/bin/env python3
"""
Test suite for the generic list controller: loading, stale responses,
filtering, create / update / delete and disposal.
"""

import asyncio
import os
import sys
import unittest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from fake_backend import FakeBackend
from school_portal.controller import ResourceList, RequestSequence, project, resolve
from school_portal.messaging import Conversation
from school_portal.models import FilterState
from school_portal.notifier import Notifier
from school_portal.resources import classes_list, students_list
from school_portal.sections.context import SectionContext


def collect_toasts(notifier):
    toasts = []
    notifier.subscribe(lambda toast: toasts.append((toast.message, toast.kind)) if toast.visible else None)
    return toasts


CLASSES = [
    {"id": 1, "name": "Grade 9A", "grade_level": "9", "capacity": 30, "fee": 400,
     "teacher": {"full_name": "Ama Mensah"}, "students": [{"count": 12}]},
    {"id": 2, "name": "Grade 10A", "grade_level": "10", "capacity": 25, "fee": 500,
     "teacher": {"full_name": "Kofi Boateng"}, "students": [{"count": 5}]},
    {"id": 3, "name": "Grade 10B", "grade_level": "10", "capacity": 25, "fee": 500,
     "teacher": None, "students": [{"count": 0}]},
]


class TestRequestSequence(unittest.TestCase):
    """Sequence numbering used to discard stale responses."""

    def test_only_latest_is_current(self):
        seq = RequestSequence()
        first = seq.next()
        second = seq.next()
        self.assertFalse(seq.is_current(first))
        self.assertTrue(seq.is_current(second))
        print("✓ Only the latest request is current")

    def test_closed_sequence_rejects_everything(self):
        seq = RequestSequence()
        number = seq.next()
        seq.close()
        self.assertFalse(seq.is_current(number))
        print("✓ Closed sequence rejects responses")


class TestProjection(unittest.TestCase):
    """Search and category narrowing over loaded rows."""

    def test_resolve_follows_joins(self):
        self.assertEqual(resolve(CLASSES[0], "teacher.full_name"), "Ama Mensah")
        self.assertEqual(resolve(CLASSES[0], "students.count"), 12)
        self.assertIsNone(resolve(CLASSES[2], "teacher.full_name"))

    def test_search_is_case_insensitive_substring(self):
        rows = project(CLASSES, FilterState(search_text="grade 10"), ("name",))
        self.assertEqual([r["id"] for r in rows], [2, 3])

    def test_search_reaches_joined_fields(self):
        rows = project(CLASSES, FilterState(search_text="kofi"), ("name", "teacher.full_name"))
        self.assertEqual([r["id"] for r in rows], [2])

    def test_all_category_matches_everything(self):
        rows = project(CLASSES, FilterState(category="all"), (), "grade_level")
        self.assertEqual(len(rows), 3)

    def test_search_and_category_commute(self):
        state = FilterState(search_text="A", category="10")
        combined = project(CLASSES, state, ("name",), "grade_level")
        by_category = project(CLASSES, FilterState(category="10"), (), "grade_level")
        then_search = project(by_category, FilterState(search_text="A"), ("name",))
        by_search = project(CLASSES, FilterState(search_text="A"), ("name",))
        then_category = project(by_search, FilterState(category="10"), (), "grade_level")
        self.assertEqual(combined, then_search)
        self.assertEqual(combined, then_category)
        print("✓ Search and category filters commute")

    def test_projection_does_not_mutate_rows(self):
        rows = list(CLASSES)
        project(rows, FilterState(sort_key="name", sort_descending=True), ("name",))
        self.assertEqual(rows, CLASSES)


class TestResourceListLoad(unittest.IsolatedAsyncioTestCase):
    """Fetch lifecycle."""

    async def asyncSetUp(self):
        self.backend = FakeBackend({"classes": CLASSES})
        self.notifier = Notifier(duration_ms=0)
        self.toasts = collect_toasts(self.notifier)
        self.controller = classes_list(self.backend, notifier=self.notifier)

    async def test_01_load_returns_server_order(self):
        """Test 1: items equal the fetched rows in server order."""
        print("\n=== Test 1: load returns server order ===")
        state = await self.controller.load()
        self.assertEqual([r["id"] for r in state.items], [2, 3, 1])  # ordered by grade_level text
        self.assertFalse(state.loading)
        self.assertIsNone(state.error)
        self.assertEqual(state.phase, "loaded")
        print("✓ Items reflect the response")

    async def test_02_failed_load_keeps_items(self):
        """Test 2: a failed refresh keeps previous items and shows an error toast."""
        print("\n=== Test 2: failed load keeps items ===")
        await self.controller.load()
        before = list(self.controller.state.items)
        self.backend.fail("query", "classes", "permission denied")
        state = await self.controller.load()
        self.assertEqual(state.items, before)
        self.assertEqual(state.error, "permission denied")
        self.assertFalse(state.loading)
        self.assertEqual(self.toasts[-1], ("Failed to load classes", "error"))
        print("✓ Previous items kept after failure")

    async def test_03_out_of_order_responses(self):
        """Test 3: a slow earlier request never overwrites a newer one."""
        print("\n=== Test 3: out-of-order responses ===")
        self.backend.delay("classes", 0.05, 0)
        slow = asyncio.create_task(self.controller.load(filters={"grade_level": "9"}))
        await asyncio.sleep(0)
        await self.controller.load(filters={"grade_level": "10"})
        await slow
        self.assertEqual(sorted(r["id"] for r in self.controller.state.items), [2, 3])
        self.assertFalse(self.controller.state.loading)
        print("✓ Stale response discarded")

    async def test_04_dispose_stops_updates(self):
        """Test 4: responses arriving after dispose are ignored."""
        print("\n=== Test 4: dispose ===")
        self.backend.delay("classes", 0.02)
        changes = []
        self.controller.subscribe(lambda c: changes.append(c.state.phase))
        task = asyncio.create_task(self.controller.load())
        await asyncio.sleep(0)
        self.controller.dispose()
        await task
        self.assertEqual(self.controller.state.items, [])
        self.assertEqual(changes, ["loading"])
        self.assertTrue(self.controller.disposed)
        print("✓ No update after dispose")

    async def test_05_visible_items_follow_filters(self):
        """Test 5: visible items are memoized and follow search/category."""
        await self.controller.load()
        first = self.controller.visible_items
        self.assertIs(first, self.controller.visible_items)
        self.controller.set_category("10")
        self.assertEqual(sorted(r["id"] for r in self.controller.visible_items), [2, 3])
        self.controller.set_search("10b")
        self.assertEqual([r["id"] for r in self.controller.visible_items], [3])
        self.assertEqual(len(self.controller.state.items), 3)

    async def test_06_sort(self):
        await self.controller.load()
        self.controller.set_sort("capacity", descending=True)
        self.assertEqual(self.controller.visible_items[0]["id"], 1)
        self.controller.set_sort("name")
        self.assertEqual([r["name"] for r in self.controller.visible_items],
                         ["Grade 10A", "Grade 10B", "Grade 9A"])


class TestResourceListMutations(unittest.IsolatedAsyncioTestCase):
    """Create, update and delete through the intent state machine."""

    async def asyncSetUp(self):
        self.backend = FakeBackend({"classes": CLASSES})
        self.notifier = Notifier(duration_ms=0)
        self.toasts = collect_toasts(self.notifier)
        self.controller = classes_list(self.backend, notifier=self.notifier)
        await self.controller.load()

    async def test_01_create_round_trip(self):
        """Test 1: created class appears after the refresh."""
        print("\n=== Test 1: create round trip ===")
        self.controller.open_create()
        self.assertTrue(self.controller.intent.modal_open)
        ok = await self.controller.save({"name": "Test Class", "grade_level": "10", "fee": 500})
        self.assertTrue(ok)
        created = [r for r in self.controller.state.items if r["name"] == "Test Class"]
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0]["grade_level"], "10")
        self.assertEqual(created[0]["fee"], 500)
        self.assertFalse(self.controller.intent.modal_open)
        self.assertEqual(self.toasts[-1], ("Class created successfully!", "success"))
        self.assertEqual(len(self.backend.calls_to("query", "classes")), 2)
        print("✓ Class created and list refreshed")

    async def test_02_numeric_fields_are_parsed(self):
        self.controller.open_create()
        await self.controller.save({"name": "Lab", "grade_level": "11", "capacity": "20", "fee": "350.5"})
        inserted = self.backend.calls_to("insert", "classes")[0][2][0]
        self.assertEqual(inserted["capacity"], 20)
        self.assertEqual(inserted["fee"], 350.5)

    async def test_03_validation_blocks_network(self):
        """Test 3: invalid input never reaches the backend."""
        print("\n=== Test 3: validation blocks submit ===")
        self.controller.open_create()
        ok = await self.controller.save({"name": "", "grade_level": "10", "capacity": "0"})
        self.assertFalse(ok)
        self.assertEqual(self.backend.calls_to("insert"), [])
        self.assertEqual(self.controller.intent.field_errors["name"], "Class name is required")
        self.assertEqual(self.controller.intent.field_errors["capacity"],
                         "Capacity must be a positive number")
        self.assertTrue(self.controller.intent.modal_open)
        print("✓ Field errors reported without a network call")

    async def test_04_backend_rejection_keeps_modal_open(self):
        """Test 4: a rejected create leaves the modal open with the message."""
        self.controller.open_create()
        before = list(self.controller.state.items)
        self.backend.fail("insert", "classes", 'duplicate key value violates unique constraint "classes_name_key"')
        ok = await self.controller.save({"name": "Grade 9A", "grade_level": "9"})
        self.assertFalse(ok)
        self.assertTrue(self.controller.intent.modal_open)
        self.assertFalse(self.controller.intent.submitting)
        self.assertIn("duplicate key", self.controller.intent.error)
        self.assertEqual(self.controller.state.items, before)

    async def test_05_resubmit_while_submitting_is_ignored(self):
        self.controller.open_create()
        self.backend.delay("classes", 0.02)
        first = asyncio.create_task(self.controller.save({"name": "A", "grade_level": "1"}))
        await asyncio.sleep(0)
        second = await self.controller.save({"name": "A", "grade_level": "1"})
        await first
        self.assertFalse(second)
        self.assertEqual(len(self.backend.calls_to("insert", "classes")), 1)

    async def test_06_update(self):
        """Test 6: edit updates the row and refreshes."""
        target = self.controller.find(3)
        self.controller.open_edit(target)
        ok = await self.controller.save({"name": "Grade 10C", "grade_level": "10", "capacity": "28"})
        self.assertTrue(ok)
        self.assertEqual(self.controller.find(3)["name"], "Grade 10C")
        self.assertEqual(self.backend.calls_to("update", "classes")[0][2], {"id": 3})
        self.assertEqual(self.toasts[-1], ("Class updated successfully!", "success"))

    async def test_07_delete_guard_blocks_class_with_students(self):
        """Test 7: a class with 5 students cannot be deleted."""
        print("\n=== Test 7: delete guard ===")
        target = self.controller.find(2)
        self.controller.request_delete(target)
        ok = await self.controller.confirm_delete()
        self.assertFalse(ok)
        self.assertEqual(self.backend.calls_to("delete"), [])
        self.assertEqual(self.toasts[-1], ("Cannot delete: 5 students are in this class!", "error"))
        self.assertFalse(self.controller.intent.confirming_delete)
        print("✓ Delete blocked without a network call")

    async def test_08_delete_requires_confirmation(self):
        self.assertFalse(await self.controller.remove(3))
        self.assertEqual(self.backend.calls_to("delete"), [])
        self.controller.request_delete(self.controller.find(3))
        self.controller.cancel_delete()
        self.assertFalse(await self.controller.confirm_delete())
        self.assertEqual(self.backend.calls_to("delete"), [])

    async def test_09_delete_empty_class(self):
        self.controller.request_delete(self.controller.find(3))
        self.assertTrue(await self.controller.confirm_delete())
        self.assertIsNone(self.controller.find(3))
        self.assertEqual(self.toasts[-1], ("Class deleted successfully!", "success"))

    async def test_10_failed_delete_reports_error(self):
        self.controller.request_delete(self.controller.find(3))
        self.backend.fail("delete", "classes", "violates foreign key constraint")
        self.assertFalse(await self.controller.confirm_delete())
        self.assertEqual(self.toasts[-1],
                         ("Failed to delete class: violates foreign key constraint", "error"))
        self.assertIsNotNone(self.controller.find(3))

    async def test_11_patch_local(self):
        self.controller.patch_local(1, {"room": "B12"})
        self.assertEqual(self.controller.find(1)["room"], "B12")
        self.assertEqual(self.backend.calls_to("update"), [])


class TestReadOnlyFields(unittest.IsolatedAsyncioTestCase):
    """Email is read-only when editing people."""

    async def test_update_drops_read_only_email(self):
        backend = FakeBackend({"users": [
            {"id": "s1", "role": "student", "full_name": "Esi", "email": "esi@school.test",
             "roll_number": "7", "class_id": 1},
        ]})
        controller = students_list(backend, notifier=Notifier(duration_ms=0))
        await controller.load()
        controller.open_edit(controller.find("s1"))
        ok = await controller.save({"full_name": "Esi Owusu", "email": "other@school.test",
                                    "roll_number": "7", "class_id": 1, "phone": ""})
        self.assertTrue(ok)
        payload = backend.calls_to("update", "users")[0][3]
        self.assertNotIn("email", payload)
        self.assertEqual(controller.find("s1")["email"], "esi@school.test")
        self.assertEqual(controller.find("s1")["full_name"], "Esi Owusu")

    async def test_create_applies_role_default(self):
        backend = FakeBackend({"users": []})
        controller = students_list(backend, notifier=Notifier(duration_ms=0))
        controller.open_create()
        ok = await controller.save({"full_name": "Yaw", "email": "yaw@school.test",
                                    "roll_number": "3", "class_id": 1})
        self.assertTrue(ok)
        self.assertEqual(controller.state.items[0]["role"], "student")

    async def test_invalid_email_rejected(self):
        controller = students_list(FakeBackend(), notifier=Notifier(duration_ms=0))
        controller.open_create()
        await controller.save({"full_name": "Yaw", "email": "yaw-at-school",
                               "roll_number": "3", "class_id": 1})
        self.assertEqual(controller.intent.field_errors, {"email": "Email is invalid"})


class TestGenericConfiguration(unittest.IsolatedAsyncioTestCase):

    async def test_labels_default_from_collection(self):
        controller = ResourceList(FakeBackend(), "fee_types")
        self.assertEqual(controller.label, "fee types")
        self.assertEqual(controller.noun, "fee type")
        self.assertEqual(controller.state.phase, "idle")



class StubPage:
    def __init__(self):
        self.tasks = []

    def run_task(self, handler):
        self.tasks.append(handler)


class ClosedChannel:
    disposed = True

    async def close(self):
        pass


class TestSectionContextDispose(unittest.TestCase):

    def test_dispose_skips_already_disposed_controllers(self):
        page = StubPage()
        ctx = SectionContext(page, FakeBackend(), None, Notifier(duration_ms=0))
        ctx.track(ClosedChannel())
        live = ctx.track(ResourceList(FakeBackend(), "subjects"))
        ctx.dispose()
        self.assertTrue(live.disposed)
        self.assertEqual(page.tasks, [])

    def test_closable_controllers_are_scheduled_on_the_page(self):
        page = StubPage()
        ctx = SectionContext(page, FakeBackend(), None, Notifier(duration_ms=0))
        conversation = ctx.track(Conversation(FakeBackend(), None))
        ctx.dispose()
        self.assertEqual(page.tasks, [conversation.close])
        ctx.dispose()
        self.assertEqual(len(page.tasks), 1)


if __name__ == "__main__":
    unittest.main()
