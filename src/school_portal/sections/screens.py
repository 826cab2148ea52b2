"""
Management sections built on the generic resource section.

Each ``create_*_section(ctx)`` configures a ``ResourceList`` from
``resources`` and a ``ScreenSpec`` describing its form, cards and export.
"""

import logging

import flet as ft

from .. import resources
from ..aggregates import available_copies, fee_status, occupancy, student_count
from ..config import INVOICE_STATUSES, PAYMENT_METHODS, ROLES, TERMS
from ..controller import resolve
from ..database import BackendError
from ..utils import format_money
from .resource_section import ScreenSpec, create_resource_section
from .ui_components import Field

logger = logging.getLogger(__name__)


# Select options loaded from the backend
def options_loader(backend, collection, label_field="name", filters=None, order=None,
                   columns=None, label=None):
    """Async loader of ``(id, label)`` pairs for a select field."""
    async def load():
        try:
            rows = await backend.query(
                collection,
                columns=columns or f"id, {label_field}",
                filters=filters,
                order=order or label_field,
            )
        except BackendError as ex:
            logger.error("Failed to load %s options: %s", collection, ex.message)
            return []
        return [(row["id"], label(row) if label else row.get(label_field)) for row in rows]
    return load


def class_options(ctx, teacher_only=False):
    filters = {"teacher_id": ctx.session.user_id} if teacher_only else None
    return options_loader(ctx.backend, "classes", filters=filters)


def teacher_options(ctx):
    return options_loader(ctx.backend, "users", "full_name", filters={"role": "teacher"})


def grade_level_options(ctx):
    async def load():
        try:
            rows = await ctx.backend.query("classes", columns="grade_level", order="grade_level")
        except BackendError as ex:
            logger.error("Failed to load grade levels: %s", ex.message)
            return []
        levels = []
        for row in rows:
            if row.get("grade_level") not in levels:
                levels.append(row.get("grade_level"))
        return [(level, f"Grade {level}") for level in levels]
    return load


def teacher_student_options(ctx):
    """Students of the classes taught by the signed-in teacher."""
    async def load():
        try:
            classes = await ctx.backend.query(
                "classes", columns="id", filters={"teacher_id": ctx.session.user_id}
            )
            if not classes:
                return []
            rows = await ctx.backend.query(
                "users", columns="id, full_name",
                filters={"role": "student", "class_id": [c["id"] for c in classes]},
                order="full_name",
            )
        except BackendError as ex:
            logger.error("Failed to load students: %s", ex.message)
            return []
        return [(row["id"], row["full_name"]) for row in rows]
    return load


def choices(values):
    return [(value, value.replace("_", " ").title()) for value in values]


# Admin
def create_classes_section(ctx):
    controller = ctx.track(resources.classes_list(ctx.backend, ctx.session, ctx.notifier))

    def lines(row):
        count = student_count(row)
        return [
            f"Grade {row.get('grade_level')}" + (f" · Room {row['room']}" if row.get("room") else ""),
            f"{count}/{row.get('capacity') or 0} students ({occupancy(row)}% full)",
            f"Teacher: {resolve(row, 'teacher.full_name') or 'Unassigned'}",
            f"Fee: {format_money(row.get('fee'))}",
        ]

    spec = ScreenSpec(
        "Class Management", "Manage classes, capacity and fees",
        fields=[
            Field("name", "Class Name", hint="e.g., Grade 10A"),
            Field("grade_level", "Grade Level", hint="e.g., 10"),
            Field("room", "Room"),
            Field("capacity", "Capacity", kind="number"),
            Field("fee", "Fee", kind="number"),
            Field("teacher_id", "Class Teacher", kind="select", options_loader=teacher_options(ctx)),
            Field("academic_year", "Academic Year", hint="e.g., 2024/2025"),
        ],
        card_title=lambda row: row.get("name"),
        card_lines=lines,
        icon=ft.Icons.CLASS_,
        color=ft.Colors.GREEN_700,
        category_label="Grade",
        category_loader=grade_level_options(ctx),
        export_columns=[("Name", "name"), ("Grade", "grade_level"), ("Room", "room"),
                        ("Capacity", "capacity"), ("Fee", "fee"), ("Teacher", "teacher.full_name")],
        export_prefix="classes",
        search_hint="Search by name, grade, room or teacher",
        form_title="Class",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_students_section(ctx):
    controller = ctx.track(resources.students_list(ctx.backend, ctx.session, ctx.notifier))

    def lines(row):
        status, balance = fee_status(resolve(row, "class.fee"), row.get("paid_amount"))
        fee_text = "Fees paid" if status == "paid" else f"Owing {format_money(balance)}"
        return [
            row.get("email"),
            f"Roll No: {row.get('roll_number') or '-'} · Class: {resolve(row, 'class.name') or 'Unassigned'}",
            fee_text,
        ]

    spec = ScreenSpec(
        "Student Management", "Enrol students and track fee status",
        fields=[
            Field("full_name", "Full Name"),
            Field("email", "Email", read_only_on_edit=True),
            Field("roll_number", "Roll Number"),
            Field("student_code", "Student Code"),
            Field("class_id", "Class", kind="select", options_loader=class_options(ctx)),
            Field("phone", "Phone"),
            Field("paid_amount", "Paid Amount", kind="number"),
        ],
        card_title=lambda row: row.get("full_name"),
        card_lines=lines,
        icon=ft.Icons.SCHOOL,
        category_label="Class",
        category_loader=class_options(ctx),
        export_columns=[("Name", "full_name"), ("Email", "email"), ("Roll Number", "roll_number"),
                        ("Class", "class.name"), ("Paid", "paid_amount")],
        export_prefix="students",
        search_hint="Search by name, email or roll number",
        form_title="Student",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_staff_section(ctx, role):
    controller = ctx.track(resources.staff_list(ctx.backend, role, ctx.notifier))
    title = role.capitalize()
    spec = ScreenSpec(
        f"{title} Management", f"Manage {role} accounts",
        fields=[
            Field("full_name", "Full Name"),
            Field("email", "Email", read_only_on_edit=True),
            Field("phone", "Phone"),
        ],
        card_title=lambda row: row.get("full_name"),
        card_lines=lambda row: [row.get("email"), row.get("phone")],
        icon=ft.Icons.PERSON,
        export_columns=[("Name", "full_name"), ("Email", "email"), ("Phone", "phone")],
        export_prefix=f"{role}s",
        search_hint="Search by name, email or phone",
        form_title=title,
    )
    return create_resource_section(ctx.page, controller, spec)


def create_users_section(ctx):
    controller = ctx.track(resources.users_list(ctx.backend, ctx.session, ctx.notifier))

    def role_menu(row):
        async def pick(e, role):
            await resources.change_role(controller, row["id"], role)

        return [ft.PopupMenuButton(
            icon=ft.Icons.ADMIN_PANEL_SETTINGS,
            tooltip="Change role",
            items=[
                ft.PopupMenuItem(text=role.capitalize(), on_click=lambda e, r=role: ctx.page.run_task(pick, e, r))
                for role in ROLES if role != row.get("role")
            ],
        )]

    spec = ScreenSpec(
        "User Management", "All accounts and their roles",
        fields=[
            Field("full_name", "Full Name"),
            Field("email", "Email", read_only_on_edit=True),
            Field("role", "Role", kind="select", options=choices(ROLES)),
            Field("phone", "Phone"),
        ],
        card_title=lambda row: row.get("full_name"),
        card_lines=lambda row: [row.get("email"), f"Role: {row.get('role') or '-'}"],
        icon=ft.Icons.MANAGE_ACCOUNTS,
        category_label="Role",
        category_options=choices(ROLES),
        search_hint="Search by name or email",
        extra_actions=role_menu,
        form_title="User",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_subjects_section(ctx):
    controller = ctx.track(resources.subjects_list(ctx.backend, ctx.session, ctx.notifier))
    spec = ScreenSpec(
        "Subjects", "Subjects taught per class",
        fields=[
            Field("name", "Subject Name"),
            Field("code", "Code", hint="e.g., MATH101"),
            Field("class_id", "Class", kind="select", options_loader=class_options(ctx)),
            Field("teacher_id", "Teacher", kind="select", options_loader=teacher_options(ctx)),
            Field("hours_per_week", "Hours per Week", kind="number"),
        ],
        card_title=lambda row: row.get("name"),
        card_lines=lambda row: [
            f"Code: {row.get('code') or '-'}",
            f"Class: {resolve(row, 'class.name') or '-'} · Teacher: {resolve(row, 'teacher.full_name') or '-'}",
        ],
        icon=ft.Icons.BOOK,
        category_label="Class",
        category_loader=class_options(ctx),
        export_columns=[("Name", "name"), ("Code", "code"), ("Class", "class.name"),
                        ("Teacher", "teacher.full_name")],
        export_prefix="subjects",
        form_title="Subject",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_books_section(ctx, extra_actions=None):
    controller = ctx.track(resources.books_list(ctx.backend, ctx.session, ctx.notifier))
    spec = ScreenSpec(
        "Library", "Books and available copies",
        fields=[
            Field("title", "Title"),
            Field("author", "Author"),
            Field("isbn", "ISBN"),
            Field("category", "Category", hint="e.g., Science"),
            Field("copies", "Copies", kind="number"),
        ],
        card_title=lambda row: row.get("title"),
        card_lines=lambda row: [
            f"{row.get('author')} · ISBN {row.get('isbn')}",
            f"{available_copies(row)} of {row.get('copies') or 0} copies available",
            row.get("document_url"),
        ],
        icon=ft.Icons.LOCAL_LIBRARY,
        color=ft.Colors.INDIGO_700,
        category_label="Category",
        category_options=[(c, c) for c in ("Fiction", "Science", "History", "Mathematics", "Reference")],
        export_columns=[("Title", "title"), ("Author", "author"), ("ISBN", "isbn"),
                        ("Category", "category"), ("Copies", "copies")],
        export_prefix="books",
        search_hint="Search by title, author or ISBN",
        extra_actions=extra_actions and (lambda row: extra_actions(controller, row)),
        form_title="Book",
    )
    return create_resource_section(ctx.page, controller, spec)


# Accountant
def create_fee_types_section(ctx):
    controller = ctx.track(resources.fee_types_list(ctx.backend, ctx.session, ctx.notifier))
    spec = ScreenSpec(
        "Fee Types", "Kinds of fees charged (tuition, transport, ...)",
        fields=[
            Field("name", "Name"),
            Field("description", "Description", kind="multiline"),
        ],
        card_title=lambda row: row.get("name"),
        card_lines=lambda row: [row.get("description")],
        icon=ft.Icons.CATEGORY,
        form_title="Fee Type",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_payments_list_section(ctx):
    controller = ctx.track(resources.payments_list(ctx.backend, ctx.session, ctx.notifier))
    spec = ScreenSpec(
        "Payment History", "Recorded payments, newest first",
        fields=[],
        card_title=lambda row: format_money(row.get("amount")),
        card_lines=lambda row: [
            f"Invoice {resolve(row, 'invoice.invoice_number') or '-'} · {resolve(row, 'invoice.student.full_name') or '-'}",
            f"{(row.get('method') or '').replace('_', ' ').title()} on {row.get('payment_date')}",
            row.get("reference_number") and f"Ref: {row['reference_number']}",
        ],
        icon=ft.Icons.PAYMENTS,
        category_label="Method",
        category_options=choices(PAYMENT_METHODS),
        export_columns=[("Date", "payment_date"), ("Invoice", "invoice.invoice_number"),
                        ("Student", "invoice.student.full_name"), ("Amount", "amount"),
                        ("Method", "method"), ("Reference", "reference_number")],
        export_prefix="payments",
        search_hint="Search by invoice, student or reference",
        can_create=False, can_edit=False, can_delete=False,
    )
    return create_resource_section(ctx.page, controller, spec), controller


def create_invoices_list_section(ctx, controller, header_controls=None):
    def lines(row):
        return [
            f"{resolve(row, 'student.full_name') or '-'} · {row.get('term')} {row.get('academic_year')}",
            f"Total {format_money(row.get('total_amount'))} · Paid {format_money(row.get('paid_amount'))}",
            f"Status: {row.get('status')} · Due {row.get('due_date') or '-'}",
        ]

    spec = ScreenSpec(
        "Invoices", "Generated invoices and their payment status",
        fields=[
            Field("due_date", "Due Date", hint="YYYY-MM-DD"),
            Field("status", "Status", kind="select", options=choices(INVOICE_STATUSES)),
        ],
        card_title=lambda row: row.get("invoice_number"),
        card_lines=lines,
        icon=ft.Icons.RECEIPT_LONG,
        category_label="Status",
        category_options=choices(INVOICE_STATUSES),
        export_columns=[("Invoice", "invoice_number"), ("Student", "student.full_name"),
                        ("Term", "term"), ("Year", "academic_year"), ("Total", "total_amount"),
                        ("Paid", "paid_amount"), ("Status", "status")],
        export_prefix="invoices",
        search_hint="Search by student name, email or invoice number",
        can_create=False,
        form_title="Invoice",
    )
    return create_resource_section(ctx.page, controller, spec, header_controls)


# Teacher
def create_assignments_section(ctx):
    controller = ctx.track(resources.assignments_list(ctx.backend, ctx.session, ctx.notifier))
    types = ["homework", "project", "test", "quiz"]
    spec = ScreenSpec(
        "Assignments", "Homework, projects and tests for your classes",
        fields=[
            Field("title", "Title"),
            Field("description", "Description", kind="multiline"),
            Field("class_id", "Class", kind="select", options_loader=class_options(ctx, teacher_only=True)),
            Field("type", "Type", kind="select", options=choices(types)),
            Field("due_date", "Due Date", hint="YYYY-MM-DD"),
            Field("points", "Points", kind="number"),
        ],
        card_title=lambda row: row.get("title"),
        card_lines=lambda row: [
            f"{resolve(row, 'class.name') or '-'} · {(row.get('type') or '').title()}",
            f"Due {row.get('due_date')} · {row.get('points') or 100} points",
        ],
        icon=ft.Icons.ASSIGNMENT,
        category_label="Type",
        category_options=choices(types),
        export_columns=[("Title", "title"), ("Class", "class.name"), ("Type", "type"),
                        ("Due", "due_date"), ("Points", "points")],
        export_prefix="assignments",
        form_title="Assignment",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_quizzes_section(ctx):
    """Saved quizzes with a draft/published filter; new ones come from the builder."""
    controller = ctx.track(resources.quizzes_list(ctx.backend, ctx.session, ctx.notifier))
    statuses = ["draft", "published"]
    spec = ScreenSpec(
        "Assessments", "Your quizzes, drafts and published",
        fields=[],
        card_title=lambda row: row.get("title"),
        card_lines=lambda row: [
            f"{resolve(row, 'class.name') or '-'} · {(row.get('status') or 'draft').upper()}",
            f"{row.get('time_limit')} minutes" if row.get("time_limit") else None,
        ],
        icon=ft.Icons.QUIZ,
        category_label="Status",
        category_options=choices(statuses),
        can_create=False,
        can_edit=False,
        form_title="Quiz",
        confirm_message=lambda row: f"Are you sure you want to delete the quiz '{row.get('title')}'?",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_behavior_section(ctx):
    controller = ctx.track(resources.behavior_list(ctx.backend, ctx.session, ctx.notifier))
    spec = ScreenSpec(
        "Behaviour", "Positive and negative behaviour records",
        fields=[
            Field("student_id", "Student", kind="select", options_loader=teacher_student_options(ctx)),
            Field("type", "Type", kind="select", options=choices(["positive", "negative"])),
            Field("category", "Category", hint="e.g., Participation"),
            Field("points", "Points", kind="number"),
            Field("description", "Description", kind="multiline"),
        ],
        card_title=lambda row: resolve(row, "student.full_name") or "Student",
        card_lines=lambda row: [
            f"{row.get('category')} · {resources.signed_behavior_points(row.get('type'), row.get('points')):+d} points",
            row.get("description"),
        ],
        icon=ft.Icons.EMOJI_EVENTS,
        category_label="Type",
        category_options=choices(["positive", "negative"]),
        can_edit=False,
        form_title="Record",
    )
    return create_resource_section(ctx.page, controller, spec)


def create_lessons_section(ctx):
    controller = ctx.track(resources.lessons_list(ctx.backend, ctx.session, ctx.notifier))
    statuses = ["draft", "scheduled", "completed"]
    spec = ScreenSpec(
        "Lesson Planner", "Plan lessons for your classes",
        fields=[
            Field("title", "Title"),
            Field("class_id", "Class", kind="select", options_loader=class_options(ctx, teacher_only=True)),
            Field("start_time", "Start", hint="YYYY-MM-DD HH:MM"),
            Field("end_time", "End", hint="YYYY-MM-DD HH:MM"),
            Field("status", "Status", kind="select", options=choices(statuses)),
            Field("description", "Description", kind="multiline"),
        ],
        card_title=lambda row: row.get("title"),
        card_lines=lambda row: [
            f"{resolve(row, 'class.name') or '-'} · {row.get('start_time') or 'Unscheduled'}",
            f"Status: {row.get('status')}",
        ],
        icon=ft.Icons.EVENT_NOTE,
        category_label="Status",
        category_options=choices(statuses),
        form_title="Lesson",
    )
    return create_resource_section(ctx.page, controller, spec)


def term_dropdown(value=None, **kwargs):
    return ft.Dropdown(
        label="Term",
        options=[ft.dropdown.Option(term) for term in TERMS],
        value=value or TERMS[0],
        **kwargs
    )
