"""
Dashboard sections: headline counts per role.
"""

import logging

import flet as ft

from .. import resources
from ..aggregates import attendance_summary, collection_summary, percentage
from ..database import BackendError
from ..utils import format_money
from .ui_components import ResponsiveCard, empty_state, section_header, stat_cards

logger = logging.getLogger(__name__)


def _dashboard(title, subtitle, cards_holder, *extra):
    return ft.Container(
        content=ft.Column([
            ft.Row([ft.Text(title, size=28, weight=ft.FontWeight.BOLD)],
                   alignment=ft.MainAxisAlignment.CENTER),
            ft.Row([ft.Text(subtitle, size=14, color=ft.Colors.GREY_600)],
                   alignment=ft.MainAxisAlignment.CENTER),
            ft.Divider(),
            cards_holder,
            *extra,
        ], spacing=15, scroll=ft.ScrollMode.AUTO),
        padding=20,
        expand=True,
    )


def create_admin_dashboard(ctx):
    """Students, teachers, classes and fee collection at a glance."""
    cards_holder = ft.Container()

    async def load():
        try:
            users = await ctx.backend.query("users", columns="id, role")
            classes = await ctx.backend.query("classes", columns="id, capacity")
            invoices = await ctx.backend.query("invoices", columns="total_amount, paid_amount")
        except BackendError as ex:
            logger.error("Failed to load dashboard: %s", ex.message)
            ctx.notifier.show("Failed to load dashboard", "error")
            return
        students = sum(1 for u in users if u.get("role") == "student")
        capacity = sum(int(c.get("capacity") or 0) for c in classes)
        fees = collection_summary(invoices)
        cards_holder.content = stat_cards(ctx.page, [
            {"icon": ft.Icons.PEOPLE, "color": ft.Colors.BLUE_600,
             "title": "Students", "value": students,
             "subtext": f"{percentage(students, capacity)}% of capacity"},
            {"icon": ft.Icons.PERSON, "color": ft.Colors.ORANGE_600,
             "title": "Teachers", "value": sum(1 for u in users if u.get("role") == "teacher")},
            {"icon": ft.Icons.CLASS_, "color": ft.Colors.GREEN_600,
             "title": "Classes", "value": len(classes)},
            {"icon": ft.Icons.PAYMENTS, "color": ft.Colors.PURPLE_600,
             "title": "Fees Collected", "value": f"{fees['rate']}%",
             "subtext": format_money(fees["collected"])},
        ])
        ctx.page.update()

    ctx.page.run_task(load)
    return _dashboard("Admin Dashboard", "School overview", cards_holder)


def create_teacher_dashboard(ctx):
    """The teacher's classes, students and assignments."""
    cards_holder = ft.Container()
    class_list = ft.Column(spacing=6)

    async def load():
        user_id = ctx.session.user_id
        try:
            classes = await ctx.backend.query(
                "classes", columns="id, name, grade_level, room",
                filters={"teacher_id": user_id}, order="name",
            )
            students = []
            if classes:
                students = await ctx.backend.query(
                    "users", columns="id",
                    filters={"role": "student", "class_id": [c["id"] for c in classes]},
                )
            assignments = await ctx.backend.query(
                "assignments", columns="id", filters={"teacher_id": user_id},
            )
        except BackendError as ex:
            logger.error("Failed to load dashboard: %s", ex.message)
            ctx.notifier.show("Failed to load dashboard", "error")
            return
        cards_holder.content = stat_cards(ctx.page, [
            {"icon": ft.Icons.CLASS_, "color": ft.Colors.GREEN_600,
             "title": "My Classes", "value": len(classes)},
            {"icon": ft.Icons.PEOPLE, "color": ft.Colors.BLUE_600,
             "title": "Students", "value": len(students)},
            {"icon": ft.Icons.ASSIGNMENT, "color": ft.Colors.ORANGE_600,
             "title": "Assignments", "value": len(assignments)},
        ])
        class_list.controls = [
            ft.ListTile(
                leading=ft.Icon(ft.Icons.CLASS_),
                title=ft.Text(c["name"]),
                subtitle=ft.Text(f"Grade {c.get('grade_level')} · Room {c.get('room') or '-'}"),
            )
            for c in classes
        ] or [empty_state("No classes assigned")]
        ctx.page.update()

    ctx.page.run_task(load)
    return _dashboard(
        f"Welcome, {ctx.session.identity.full_name or 'Teacher'}", "Your teaching overview",
        cards_holder, ResponsiveCard(class_list),
    )


def create_student_dashboard(ctx):
    """The student's own invoices and attendance."""
    invoices = ctx.track(resources.student_invoices_list(ctx.backend, ctx.session, ctx.notifier))
    cards_holder = ft.Container()
    invoice_list = ft.Column(spacing=6)
    attendance = {"records": []}

    def render(_=None):
        fees = collection_summary(invoices.state.items)
        summary = attendance_summary(attendance["records"])
        cards_holder.content = stat_cards(ctx.page, [
            {"icon": ft.Icons.RECEIPT_LONG, "color": ft.Colors.BLUE_600,
             "title": "Billed", "value": format_money(fees["billed"])},
            {"icon": ft.Icons.PAYMENTS, "color": ft.Colors.GREEN_600,
             "title": "Paid", "value": format_money(fees["collected"])},
            {"icon": ft.Icons.PENDING_ACTIONS, "color": ft.Colors.ORANGE_600,
             "title": "Balance", "value": format_money(fees["outstanding"])},
            {"icon": ft.Icons.FACT_CHECK, "color": ft.Colors.PURPLE_600,
             "title": "Attendance", "value": f"{summary['rate']}%",
             "subtext": f"{summary['present']} of {summary['total']} days present"},
        ])
        invoice_list.controls = [
            ft.ListTile(
                leading=ft.Icon(ft.Icons.RECEIPT),
                title=ft.Text(f"{row.get('invoice_number')} · {row.get('term')} {row.get('academic_year')}"),
                subtitle=ft.Text(f"Total {format_money(row.get('total_amount'))} · "
                                 f"Paid {format_money(row.get('paid_amount'))} · {row.get('status')}"),
            )
            for row in invoices.state.items
        ] or [empty_state("No invoices yet")]
        ctx.page.update()

    async def load_attendance():
        try:
            attendance["records"] = await ctx.backend.query(
                "attendance", columns="date, status", filters={"student_id": ctx.session.user_id},
            )
        except BackendError as ex:
            logger.error("Failed to load attendance: %s", ex.message)
            ctx.notifier.show("Failed to load attendance", "error")
            return
        render()

    invoices.subscribe(render)
    ctx.page.run_task(invoices.load)
    ctx.page.run_task(load_attendance)
    return _dashboard(
        f"Welcome, {ctx.session.identity.full_name or 'Student'}", "Your fees and attendance",
        cards_holder,
        section_header("My Invoices", "Invoices issued to you"),
        ResponsiveCard(invoice_list),
    )
