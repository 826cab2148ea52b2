"""
Navigation utilities for the School Portal.

Each role gets its own set of destinations; the widget adapts to screen width:
- NavigationBar for mobile (< 600px)
- NavigationRail for tablet (600-1024px)
- Horizontal NavigationBar for desktop (>= 1024px)
"""

import flet as ft

# (view key, icon, selected icon, label)
ROLE_DESTINATIONS = {
    "admin": [
        ("dashboard", ft.Icons.DASHBOARD_OUTLINED, ft.Icons.DASHBOARD, "Dashboard"),
        ("classes", ft.Icons.CLASS_OUTLINED, ft.Icons.CLASS_, "Classes"),
        ("people", ft.Icons.PEOPLE_OUTLINE, ft.Icons.PEOPLE, "People"),
        ("subjects", ft.Icons.BOOK_OUTLINED, ft.Icons.BOOK, "Subjects"),
        ("fees", ft.Icons.PAYMENT_OUTLINED, ft.Icons.PAYMENT, "Fees"),
        ("library", ft.Icons.LOCAL_LIBRARY_OUTLINED, ft.Icons.LOCAL_LIBRARY, "Library"),
    ],
    "teacher": [
        ("dashboard", ft.Icons.DASHBOARD_OUTLINED, ft.Icons.DASHBOARD, "Dashboard"),
        ("attendance", ft.Icons.FACT_CHECK_OUTLINED, ft.Icons.FACT_CHECK, "Attendance"),
        ("assignments", ft.Icons.ASSIGNMENT_OUTLINED, ft.Icons.ASSIGNMENT, "Assignments"),
        ("gradebook", ft.Icons.GRADING, ft.Icons.GRADING, "Gradebook"),
        ("behavior", ft.Icons.EMOJI_EVENTS_OUTLINED, ft.Icons.EMOJI_EVENTS, "Behaviour"),
        ("reports", ft.Icons.INSIGHTS_OUTLINED, ft.Icons.INSIGHTS, "Reports"),
        ("messages", ft.Icons.CHAT_OUTLINED, ft.Icons.CHAT, "Messages"),
    ],
    "accountant": [
        ("dashboard", ft.Icons.DASHBOARD_OUTLINED, ft.Icons.DASHBOARD, "Dashboard"),
        ("structure", ft.Icons.ACCOUNT_TREE_OUTLINED, ft.Icons.ACCOUNT_TREE, "Fee Structure"),
        ("invoices", ft.Icons.RECEIPT_LONG_OUTLINED, ft.Icons.RECEIPT_LONG, "Invoices"),
        ("payments", ft.Icons.PAYMENTS_OUTLINED, ft.Icons.PAYMENTS, "Payments"),
    ],
    "student": [
        ("dashboard", ft.Icons.DASHBOARD_OUTLINED, ft.Icons.DASHBOARD, "Dashboard"),
        ("messages", ft.Icons.CHAT_OUTLINED, ft.Icons.CHAT, "Messages"),
    ],
}


def destinations_for(role):
    return ROLE_DESTINATIONS.get(role, ROLE_DESTINATIONS["student"])


def navigation_rail(role: str, current_view: str, page_width: float, on_change):
    """Return the correct navigation widget for the role and form-factor."""
    dest_defs = destinations_for(role)
    keys = [key for key, _, _, _ in dest_defs]
    idx = keys.index(current_view) if current_view in keys else 0

    destinations_bar = [
        ft.NavigationBarDestination(icon=icon, selected_icon=selected_icon, label=label)
        for _, icon, selected_icon, label in dest_defs
    ]
    destinations_rail = [
        ft.NavigationRailDestination(icon=icon, selected_icon=selected_icon, label=label)
        for _, icon, selected_icon, label in dest_defs
    ]

    def handle_change(e):
        on_change(keys[e.control.selected_index])

    if page_width < 600:                       # phone
        return ft.Container(
            content=ft.NavigationBar(
                destinations=destinations_bar,
                selected_index=idx,
                on_change=handle_change,
                elevation=8,
            ),
            height=80,
        )

    elif page_width < 1024:  # tablet
        return ft.NavigationRail(
            destinations=destinations_rail,
            selected_index=idx,
            label_type=ft.NavigationRailLabelType.SELECTED,
            min_width=72, expand=True,
            on_change=handle_change,
            elevation=2,
        )

    # desktop (>= 1024px) - horizontal navigation at top
    else:
        return ft.Container(
            content=ft.NavigationBar(
                destinations=destinations_bar,
                selected_index=idx,
                on_change=handle_change,
                elevation=2,
            ),
            height=72,
        )
