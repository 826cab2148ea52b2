"""
Derived values computed from loaded collections.

All functions are pure reductions over rows already in memory. Money values
are summed as plain floats; percentages are ``round(part / whole * 100)`` and
are ``0`` whenever ``whole`` is zero or missing.
"""

import math


def to_number(value):
    """Numeric value of a row field; missing, unparseable or non-finite counts as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    try:
        number = float(str(value).strip())
    except ValueError:
        return 0
    return number if math.isfinite(number) else 0


def percentage(part, whole):
    whole = to_number(whole)
    if whole == 0:
        return 0
    return round(to_number(part) / whole * 100)


def total(rows, field):
    return sum((to_number(row.get(field)) for row in rows), 0)


def count_where(rows, field, value):
    return sum(1 for row in rows if row.get(field) == value)


def student_count(class_row):
    """Students enrolled in a class row.

    Uses ``student_count`` when the backend provides it, otherwise an embedded
    ``students(count)`` aggregate.
    """
    if class_row.get("student_count") is not None:
        return int(to_number(class_row["student_count"]))
    embedded = class_row.get("students")
    if isinstance(embedded, list) and embedded and isinstance(embedded[0], dict):
        return int(to_number(embedded[0].get("count")))
    return 0


def occupancy(class_row):
    return percentage(student_count(class_row), class_row.get("capacity"))


def fee_status(fee, paid):
    """Return ``(status, balance)``: ``paid`` once the balance is <= 0."""
    balance = to_number(fee) - to_number(paid)
    if balance <= 0:
        return "paid", balance
    return "owing", balance


def collection_summary(invoices):
    """Billed, collected and outstanding totals plus the collection rate."""
    billed = total(invoices, "total_amount")
    collected = total(invoices, "paid_amount")
    return {
        "billed": billed,
        "collected": collected,
        "outstanding": billed - collected,
        "rate": percentage(collected, billed),
        "count": len(invoices),
    }


def invoice_balance(invoice):
    return to_number(invoice.get("total_amount")) - to_number(invoice.get("paid_amount"))


def attendance_summary(records):
    """Daily attendance counts; ``total`` only counts marked students."""
    present = count_where(records, "status", "present")
    absent = count_where(records, "status", "absent")
    late = count_where(records, "status", "late")
    absentees = [
        record.get("student") or record.get("users") or {"id": record.get("student_id")}
        for record in records if record.get("status") == "absent"
    ]
    return {
        "present": present,
        "absent": absent,
        "late": late,
        "total": len(records),
        "rate": percentage(present, len(records)),
        "absentees": absentees,
    }


def _has_grade(value):
    return value is not None and value != ""


def student_average(grades, assignments, student_id):
    """Mean of grade / points * 100 across graded assignments, or ``None``.

    ``grades`` maps ``(student_id, assignment_id)`` to a grade.
    """
    total_pct = 0
    count = 0
    for assignment in assignments:
        grade = grades.get((student_id, assignment["id"]))
        if not _has_grade(grade):
            continue
        points = to_number(assignment.get("points")) or 100
        total_pct += to_number(grade) / points * 100
        count += 1
    if count == 0:
        return None
    return round(total_pct / count)


def assignment_average(grades, assignment_id):
    """Mean raw grade for one assignment, or ``None``."""
    values = [
        to_number(grade) for (_, a_id), grade in grades.items()
        if a_id == assignment_id and _has_grade(grade)
    ]
    if not values:
        return None
    return round(sum(values) / len(values))


def available_copies(book):
    return max(int(to_number(book.get("copies"))) - int(to_number(book.get("borrowed"))), 0)


def structure_total(structures):
    return total(structures, "amount")
