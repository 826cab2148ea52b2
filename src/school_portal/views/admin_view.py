"""
Admin view: school setup, people, fees and the library.
"""

import flet as ft

from ..sections.dashboard_sections import create_admin_dashboard
from ..sections.fees_sections import (
    create_fee_dashboard_section,
    create_fee_structure_section,
    create_invoices_section,
    create_payments_section,
)
from ..sections.library_section import create_library_section
from ..sections.screens import (
    create_classes_section,
    create_fee_types_section,
    create_staff_section,
    create_students_section,
    create_subjects_section,
    create_users_section,
)


def tabs(entries):
    """Tabbed container of ``(label, icon, content)`` entries."""
    return ft.Tabs(
        selected_index=0,
        animation_duration=200,
        tabs=[ft.Tab(text=label, icon=icon, content=content) for label, icon, content in entries],
        expand=True,
    )


def create_admin_view(ctx, view_key):
    """Create the admin content for ``view_key``."""
    if view_key == "classes":
        return create_classes_section(ctx)
    if view_key == "people":
        return tabs([
            ("Students", ft.Icons.SCHOOL, create_students_section(ctx)),
            ("Teachers", ft.Icons.PERSON, create_staff_section(ctx, "teacher")),
            ("Accountants", ft.Icons.ACCOUNT_BALANCE, create_staff_section(ctx, "accountant")),
            ("All Users", ft.Icons.MANAGE_ACCOUNTS, create_users_section(ctx)),
        ])
    if view_key == "subjects":
        return create_subjects_section(ctx)
    if view_key == "fees":
        return tabs([
            ("Overview", ft.Icons.DASHBOARD, create_fee_dashboard_section(ctx)),
            ("Fee Types", ft.Icons.CATEGORY, create_fee_types_section(ctx)),
            ("Structure", ft.Icons.ACCOUNT_TREE, create_fee_structure_section(ctx)),
            ("Invoices", ft.Icons.RECEIPT_LONG, create_invoices_section(ctx)),
            ("Payments", ft.Icons.PAYMENTS, create_payments_section(ctx)),
        ])
    if view_key == "library":
        return create_library_section(ctx)
    return create_admin_dashboard(ctx)
