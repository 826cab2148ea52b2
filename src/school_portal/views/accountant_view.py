"""
Accountant view: fee structure, invoices and payments.
"""

import flet as ft

from ..sections.fees_sections import (
    create_fee_dashboard_section,
    create_fee_structure_section,
    create_invoices_section,
    create_payments_section,
)
from ..sections.screens import create_fee_types_section
from .admin_view import tabs


def create_accountant_view(ctx, view_key):
    if view_key == "structure":
        return tabs([
            ("Fee Structure", ft.Icons.ACCOUNT_TREE, create_fee_structure_section(ctx)),
            ("Fee Types", ft.Icons.CATEGORY, create_fee_types_section(ctx)),
        ])
    if view_key == "invoices":
        return create_invoices_section(ctx)
    if view_key == "payments":
        return create_payments_section(ctx)
    return create_fee_dashboard_section(ctx)
