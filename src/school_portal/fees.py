"""
Invoice generation and payment recording.

Invoice generation is a multi-step mutation: one invoice insert and one
invoice-items insert per student, with no rollback. A failure for one student
does not stop the others; the caller receives a ``GenerationReport`` listing
what was generated and what failed.
"""

import logging
import random
import time
from datetime import date

from .aggregates import invoice_balance, structure_total, to_number
from .database import BackendError
from .validation import parse_number

logger = logging.getLogger(__name__)


class GenerationReport:
    """Outcome of a batch invoice generation."""
    def __init__(self):
        self.generated = []
        self.failed = []

    def add_failure(self, student_id, message):
        self.failed.append((student_id, message))

    @property
    def attempted(self):
        return len(self.generated) + len(self.failed)

    @property
    def kind(self):
        """Toast kind: success, warning on partial completion, error on none."""
        if not self.failed:
            return "success"
        return "warning" if self.generated else "error"

    @property
    def summary(self):
        if not self.failed:
            return f"Generated {len(self.generated)} invoices successfully"
        return f"Generated {len(self.generated)} of {self.attempted} invoices; {len(self.failed)} failed"


def make_invoice_number(academic_year):
    stamp = str(int(time.time() * 1000))[-6:]
    return f"INV-{academic_year}-{stamp}-{random.randint(0, 999)}"


async def generate_invoices(backend, term, academic_year, due_date,
                            class_id=None, student=None):
    """Generate invoices for a whole class, or for one student.

    The fee structures of the class (the student's class in single-student
    mode) for ``term``/``academic_year`` become the invoice items.
    """
    if not term or not academic_year or not due_date:
        raise ValueError("Please fill all required fields")
    if student is None and not class_id:
        raise ValueError("Please select a class")

    target_class = student.get("class_id") if student is not None else class_id
    structures = await backend.query(
        "fee_structures",
        columns="*, fee_type:fee_type_id(name)",
        filters={"class_id": target_class, "term": term, "academic_year": academic_year},
    )
    if not structures:
        raise BackendError("No fee structures found for the student's class and term.")

    if student is None:
        students = await backend.query(
            "users", columns="id", filters={"class_id": target_class, "role": "student"}
        )
        if not students:
            raise BackendError("No students found in this class.")
    else:
        students = [student]

    amount = structure_total(structures)
    report = GenerationReport()
    for target in students:
        try:
            rows = await backend.insert("invoices", [{
                "student_id": target["id"],
                "academic_year": academic_year,
                "term": term,
                "due_date": due_date,
                "total_amount": amount,
                "paid_amount": 0,
                "status": "unpaid",
                "invoice_number": make_invoice_number(academic_year),
            }])
        except BackendError as ex:
            logger.error("Invoice for student %s failed: %s", target["id"], ex.message)
            report.add_failure(target["id"], ex.message)
            continue

        invoice = rows[0]
        items = [
            {
                "invoice_id": invoice["id"],
                "fee_structure_id": structure["id"],
                "amount": structure["amount"],
                "description": (structure.get("fee_type") or {}).get("name") or "Fee Item",
            }
            for structure in structures
        ]
        try:
            await backend.insert("invoice_items", items)
        except BackendError as ex:
            logger.error("Items for invoice %s failed: %s", invoice["id"], ex.message)
            report.add_failure(target["id"], f"Invoice {invoice.get('invoice_number')} has no items: {ex.message}")
            continue
        report.generated.append(invoice["id"])

    logger.info("Invoice generation for %s %s: %s", term, academic_year, report.summary)
    return report


async def find_invoice(backend, invoice_number):
    """Look up one invoice by its number; ``None`` when not found."""
    number = (invoice_number or "").strip()
    if not number:
        return None
    rows = await backend.query(
        "invoices",
        columns="*, student:student_id(full_name, email)",
        filters={"invoice_number": number},
        limit=1,
    )
    return rows[0] if rows else None


async def record_payment(backend, invoice, amount, method="cash",
                         reference_number="", recorded_by=None):
    """Record a payment and update the invoice's paid amount and status.

    Returns the invoice with its new ``paid_amount`` and ``status``.
    """
    try:
        pay_amount = parse_number(amount)
    except ValueError:
        pay_amount = None
    if pay_amount is None or pay_amount <= 0:
        raise ValueError("Please enter a valid amount")
    if pay_amount > invoice_balance(invoice):
        raise ValueError("Amount exceeds remaining balance")

    new_paid = to_number(invoice.get("paid_amount")) + pay_amount
    await backend.insert("payments", [{
        "invoice_id": invoice["id"],
        "amount": pay_amount,
        "method": method,
        "reference_number": reference_number or None,
        "payment_date": date.today().isoformat(),
        "recorded_by": recorded_by,
    }])

    status = "paid" if new_paid >= to_number(invoice.get("total_amount")) else "partial"
    await backend.update("invoices", {"id": invoice["id"]},
                         {"paid_amount": new_paid, "status": status})
    logger.info("Payment of %s recorded on invoice %s (%s)",
                pay_amount, invoice.get("invoice_number"), status)
    return {**invoice, "paid_amount": new_paid, "status": status}
