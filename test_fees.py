#!/usr/bin/env python3
"""
Test suite for invoice generation and payment recording.
"""

import os
import sys
import unittest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from fake_backend import FakeBackend
from school_portal.database import BackendError
from school_portal.fees import find_invoice, generate_invoices, record_payment


def fee_tables():
    return {
        "fee_structures": [
            {"id": 11, "class_id": 7, "term": "Term 1", "academic_year": "2024/2025",
             "amount": 300, "fee_type": {"name": "Tuition"}},
            {"id": 12, "class_id": 7, "term": "Term 1", "academic_year": "2024/2025",
             "amount": 50, "fee_type": None},
            {"id": 13, "class_id": 7, "term": "Term 2", "academic_year": "2024/2025",
             "amount": 999},
        ],
        "users": [
            {"id": "s1", "role": "student", "class_id": 7, "full_name": "Esi"},
            {"id": "s2", "role": "student", "class_id": 7, "full_name": "Yaw"},
            {"id": "t1", "role": "teacher", "class_id": 7, "full_name": "Ama"},
        ],
        "invoices": [
            {"id": 1, "invoice_number": "INV-2024/2025-000001-1", "student_id": "s1",
             "total_amount": 1000, "paid_amount": 250, "status": "partial"},
        ],
    }


class TestGenerateInvoices(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend(fee_tables())

    async def test_01_class_mode(self):
        """Test 1: One invoice per student with the term's structures as items"""
        print("\n=== Test 1: Class Invoice Generation ===")
        report = await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01", class_id=7)
        self.assertEqual(report.kind, "success")
        self.assertEqual(len(report.generated), 2)
        self.assertEqual(report.summary, "Generated 2 invoices successfully")

        invoices = [row for row in self.backend.tables["invoices"] if row["id"] in report.generated]
        self.assertEqual({row["student_id"] for row in invoices}, {"s1", "s2"})
        for invoice in invoices:
            self.assertEqual(invoice["total_amount"], 350)
            self.assertEqual(invoice["paid_amount"], 0)
            self.assertEqual(invoice["status"], "unpaid")
            self.assertTrue(invoice["invoice_number"].startswith("INV-2024/2025-"))

        items = self.backend.tables["invoice_items"]
        self.assertEqual(len(items), 4)
        self.assertEqual({item["description"] for item in items}, {"Tuition", "Fee Item"})
        print("✓ 2 invoices with 2 items each")

    async def test_02_single_student_mode(self):
        """Test 2: Single student uses the student's own class"""
        print("\n=== Test 2: Single Student Invoice ===")
        student = {"id": "s2", "class_id": 7}
        report = await generate_invoices(self.backend, "Term 2", "2024/2025", "2025-01-10", student=student)
        self.assertEqual(len(report.generated), 1)
        invoice = self.backend.tables["invoices"][-1]
        self.assertEqual(invoice["student_id"], "s2")
        self.assertEqual(invoice["total_amount"], 999)
        self.assertEqual(self.backend.calls_to("query", "users"), [])
        print("✓ Invoice generated without querying the class roster")

    async def test_03_partial_completion(self):
        """Test 3: A failing student does not stop the batch"""
        print("\n=== Test 3: Partial Completion ===")
        self.backend.fail("insert", "invoices", "duplicate key")
        report = await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01", class_id=7)
        self.assertEqual(report.kind, "warning")
        self.assertEqual(len(report.generated), 1)
        self.assertEqual(report.failed, [("s1", "duplicate key")])
        self.assertEqual(report.summary, "Generated 1 of 2 invoices; 1 failed")
        print(f"✓ {report.summary}")

    async def test_04_missing_items_reported(self):
        """Test 4: An invoice whose items fail counts as a failure"""
        self.backend.fail("insert", "invoice_items", "items rejected")
        report = await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01", class_id=7)
        self.assertEqual(len(report.failed), 1)
        self.assertIn("has no items", report.failed[0][1])

    async def test_05_everything_failed(self):
        """Test 5: Error kind when no invoice was generated"""
        self.backend.fail("insert", "invoices")
        self.backend.fail("insert", "invoices")
        report = await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01", class_id=7)
        self.assertEqual(report.kind, "error")
        self.assertEqual(report.generated, [])

    async def test_06_no_structures(self):
        """Test 6: Nothing to bill"""
        with self.assertRaises(BackendError) as caught:
            await generate_invoices(self.backend, "Term 3", "2024/2025", "2025-04-01", class_id=7)
        self.assertIn("No fee structures", caught.exception.message)
        self.assertEqual(self.backend.calls_to("insert"), [])

    async def test_07_no_students(self):
        """Test 7: Empty class"""
        self.backend.tables["fee_structures"].append(
            {"id": 14, "class_id": 8, "term": "Term 1", "academic_year": "2024/2025", "amount": 10})
        with self.assertRaises(BackendError) as caught:
            await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01", class_id=8)
        self.assertEqual(caught.exception.message, "No students found in this class.")

    async def test_08_required_fields(self):
        """Test 8: Missing form fields never reach the backend"""
        with self.assertRaises(ValueError):
            await generate_invoices(self.backend, "", "2024/2025", "2024-10-01", class_id=7)
        with self.assertRaises(ValueError):
            await generate_invoices(self.backend, "Term 1", "2024/2025", "2024-10-01")
        self.assertEqual(self.backend.calls, [])


class TestPayments(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend(fee_tables())
        self.invoice = dict(self.backend.tables["invoices"][0])

    async def test_find_invoice(self):
        found = await find_invoice(self.backend, "  INV-2024/2025-000001-1 ")
        self.assertEqual(found["id"], 1)
        self.assertIsNone(await find_invoice(self.backend, "INV-missing"))
        self.assertIsNone(await find_invoice(self.backend, "   "))

    async def test_partial_payment(self):
        updated = await record_payment(self.backend, self.invoice, "250", "mobile_money",
                                       "MM-42", recorded_by="acc1")
        self.assertEqual(updated["paid_amount"], 500)
        self.assertEqual(updated["status"], "partial")
        payment = self.backend.tables["payments"][0]
        self.assertEqual(payment["amount"], 250)
        self.assertEqual(payment["method"], "mobile_money")
        self.assertEqual(payment["recorded_by"], "acc1")
        self.assertEqual(self.backend.tables["invoices"][0]["paid_amount"], 500)
        print("✓ 250 of 750 outstanding -> partial")

    async def test_payment_settles_invoice(self):
        updated = await record_payment(self.backend, self.invoice, 750)
        self.assertEqual(updated["status"], "paid")
        self.assertEqual(self.backend.tables["invoices"][0]["status"], "paid")
        self.assertIsNone(self.backend.tables["payments"][0]["reference_number"])

    async def test_overpayment_rejected(self):
        with self.assertRaises(ValueError) as caught:
            await record_payment(self.backend, self.invoice, "800")
        self.assertEqual(str(caught.exception), "Amount exceeds remaining balance")
        self.assertEqual(self.backend.calls, [])

    async def test_invalid_amount(self):
        for amount in ("", "abc", "0", -5):
            with self.assertRaises(ValueError):
                await record_payment(self.backend, self.invoice, amount)
        self.assertEqual(self.backend.calls, [])

    async def test_non_finite_amount_rejected(self):
        for amount in ("nan", "inf", "-inf", float("nan")):
            with self.assertRaises(ValueError) as caught:
                await record_payment(self.backend, self.invoice, amount)
            self.assertEqual(str(caught.exception), "Please enter a valid amount")
        self.assertEqual(self.backend.calls, [])
        self.assertNotIn("payments", self.backend.tables)


if __name__ == "__main__":
    unittest.main()
