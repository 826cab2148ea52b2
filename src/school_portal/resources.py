"""
Per-screen ``ResourceList`` configurations.

Each factory takes the backend gateway, the current ``Session`` and the page's
``Notifier`` and returns a controller configured for one screen: collection,
joined columns, server-side filters, search fields, category filter,
validation rules and delete guards.
"""

import logging

from .aggregates import student_count
from .config import ROLES
from .controller import ResourceList
from .database import BackendError
from .validation import email, number_range, phone, required

logger = logging.getLogger(__name__)


def class_delete_guard(class_row):
    """Block deleting a class that still has students."""
    count = student_count(class_row)
    if count > 0:
        return f"Cannot delete: {count} students are in this class!"
    return None


def classes_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "classes",
        columns="*, teacher:teacher_id(full_name), students:users!class_id(count)",
        order="grade_level",
        search_fields=("name", "grade_level", "room", "teacher.full_name"),
        category_field="grade_level",
        rules=(
            required("name", "Class name is required"),
            required("grade_level", "Grade level is required"),
            number_range("capacity", minimum=1, integer=True,
                         message="Capacity must be a positive number"),
            number_range("fee", minimum=0, message="Fee must be a non-negative amount"),
        ),
        numeric_fields=("capacity", "fee"),
        delete_guard=class_delete_guard,
        label="classes", noun="class", notifier=notifier,
    )


def teacher_classes_list(backend, session, notifier=None):
    """Classes taught by the signed-in teacher."""
    controller = classes_list(backend, session, notifier)
    controller.filters = {"teacher_id": session.user_id}
    controller.order = "name"
    return controller


def _people_rules(extra=()):
    return (
        required("full_name", "Name is required"),
        required("email", "Email is required"),
        email("email", "Email is invalid"),
        phone("phone", "Phone number is invalid"),
    ) + tuple(extra)


def students_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "users",
        columns="*, class:class_id(name, grade_level, fee)",
        filters={"role": "student"},
        order="full_name",
        search_fields=("full_name", "email", "roll_number", "student_code"),
        category_field="class_id",
        rules=_people_rules((
            required("roll_number", "Roll number is required"),
            required("class_id", "Class is required"),
            number_range("paid_amount", minimum=0, message="Paid amount cannot be negative"),
        )),
        numeric_fields=("paid_amount",),
        read_only_fields=("email",),
        defaults={"role": "student"},
        label="students", noun="student", notifier=notifier,
    )


def staff_list(backend, role, notifier=None):
    """Teachers or accountants: ``users`` rows with the given role."""
    return ResourceList(
        backend, "users",
        filters={"role": role},
        order="full_name",
        search_fields=("full_name", "email", "phone"),
        rules=_people_rules(),
        read_only_fields=("email",),
        defaults={"role": role},
        label=f"{role}s", noun=role, notifier=notifier,
    )


def users_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "users",
        order="created_at", descending=True,
        search_fields=("full_name", "email"),
        category_field="role",
        rules=_people_rules((required("role", "Role is required"),)),
        read_only_fields=("email",),
        label="users", noun="user", notifier=notifier,
    )


async def change_role(controller, row_id, role):
    """Set a user's role and patch the loaded row instead of re-fetching."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    try:
        await controller.backend.update("users", {"id": row_id}, {"role": role})
    except BackendError as ex:
        logger.error("Failed to change role of %s: %s", row_id, ex.message)
        controller.notifier.show(f"Failed to update role: {ex.message}", "error")
        return False
    controller.patch_local(row_id, {"role": role})
    controller.notifier.show(f"Role updated to {role}", "success")
    return True


def subjects_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "subjects",
        columns="*, class:class_id(name), teacher:teacher_id(full_name)",
        order="name",
        search_fields=("name", "code", "class.name", "teacher.full_name"),
        category_field="class_id",
        rules=(
            required("name", "Subject name is required"),
            required("code", "Subject code is required"),
            number_range("hours_per_week", minimum=0, maximum=40,
                         message="Hours per week must be between 0 and 40"),
        ),
        numeric_fields=("hours_per_week",),
        label="subjects", noun="subject", notifier=notifier,
    )


def fee_types_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "fee_types",
        order="name",
        search_fields=("name", "description"),
        rules=(required("name", "Name is required"),),
        label="fee types", noun="fee type", notifier=notifier,
    )


def fee_structures_list(backend, session=None, notifier=None):
    """Fee structures of one class/term/year, selected via ``load(filters=...)``."""
    return ResourceList(
        backend, "fee_structures",
        columns="*, fee_type:fee_type_id(name)",
        search_fields=("fee_type.name",),
        rules=(
            required("class_id", "Class is required"),
            required("fee_type_id", "Fee type is required"),
            required("amount", "Amount is required"),
            number_range("amount", minimum=0, message="Amount must be a non-negative number"),
        ),
        numeric_fields=("amount",),
        label="fee structures", noun="fee", notifier=notifier,
    )


def invoices_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "invoices",
        columns="*, student:student_id(full_name, email, student_code, class_id), invoice_items(count)",
        order="created_at", descending=True,
        search_fields=("student.full_name", "student.email", "invoice_number"),
        category_field="status",
        label="invoices", noun="invoice", notifier=notifier,
    )


def student_invoices_list(backend, session, notifier=None):
    controller = invoices_list(backend, session, notifier)
    controller.filters = {"student_id": session.user_id}
    return controller


def payments_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "payments",
        columns="*, invoice:invoice_id(invoice_number, student:student_id(full_name, email))",
        order="payment_date", descending=True,
        search_fields=("invoice.invoice_number", "invoice.student.full_name", "reference_number"),
        category_field="method",
        label="payments", noun="payment", notifier=notifier,
    )


def assignments_list(backend, session, notifier=None):
    return ResourceList(
        backend, "assignments",
        columns="*, class:class_id(name)",
        filters={"teacher_id": session.user_id},
        order="due_date",
        search_fields=("title", "description", "class.name"),
        category_field="type",
        rules=(
            required("title", "Title is required"),
            required("class_id", "Class is required"),
            required("due_date", "Due date is required"),
            number_range("points", minimum=1, maximum=1000, integer=True,
                         message="Points must be between 1 and 1000"),
        ),
        numeric_fields=("points",),
        defaults={"teacher_id": session.user_id},
        label="assignments", noun="assignment", notifier=notifier,
    )


def behavior_list(backend, session, notifier=None):
    return ResourceList(
        backend, "behavior_records",
        columns="*, student:student_id(full_name), class:class_id(name)",
        filters={"teacher_id": session.user_id},
        order="created_at", descending=True,
        search_fields=("student.full_name", "category", "description"),
        category_field="type",
        rules=(
            required("student_id", "Student is required"),
            required("category", "Category is required"),
            number_range("points", minimum=0, maximum=100, integer=True,
                         message="Points must be between 0 and 100"),
        ),
        numeric_fields=("points",),
        defaults={"teacher_id": session.user_id},
        local_delete=True,
        label="behaviour records", noun="record", notifier=notifier,
    )


def signed_behavior_points(record_type, points):
    """Positive records add points, negative records subtract them."""
    points = abs(int(points or 0))
    return points if record_type == "positive" else -points


def lessons_list(backend, session, notifier=None):
    return ResourceList(
        backend, "lessons",
        columns="*, class:class_id(name)",
        filters={"teacher_id": session.user_id},
        order="start_time", descending=True,
        search_fields=("title", "description", "class.name"),
        category_field="status",
        rules=(
            required("title", "Title is required"),
            required("class_id", "Class is required"),
        ),
        defaults={"teacher_id": session.user_id, "status": "draft"},
        label="lessons", noun="lesson", notifier=notifier,
    )


def books_list(backend, session=None, notifier=None):
    return ResourceList(
        backend, "books",
        order="title",
        search_fields=("title", "author", "isbn"),
        category_field="category",
        rules=(
            required("title", "Title is required"),
            required("author", "Author is required"),
            required("isbn", "ISBN is required"),
            required("category", "Category is required"),
            required("copies", "Valid number of copies is required"),
            number_range("copies", minimum=1, integer=True,
                         message="Valid number of copies is required"),
        ),
        numeric_fields=("copies",),
        label="books", noun="book", notifier=notifier,
    )


def quizzes_list(backend, session, notifier=None):
    """Quizzes of the signed-in teacher; drafts and published ones share the list."""
    return ResourceList(
        backend, "quizzes",
        columns="*, class:class_id(name)",
        filters={"teacher_id": session.user_id},
        order="created_at", descending=True,
        search_fields=("title", "description", "class.name"),
        category_field="status",
        local_delete=True,
        label="quizzes", noun="quiz", notifier=notifier,
    )
