"""
UI Components shared by the portal sections.

Responsive helpers, stat cards, empty states, the toast snackbar, the confirm
dialog and the generic modal form used by every resource section.
"""

import flet as ft


TOAST_COLORS = {
    "success": ft.Colors.GREEN_400,
    "error": ft.Colors.RED_400,
    "warning": ft.Colors.AMBER_400,
    "info": ft.Colors.BLUE_400,
}


# Responsive Design Utilities
def get_breakpoint(page):
    """Get current responsive breakpoint based on window width."""
    try:
        width = getattr(page.window, 'width', None) or getattr(page, 'width', None) or 800
        if width < 768:
            return 'mobile'
        elif width < 1024:
            return 'tablet'
        else:
            return 'desktop'
    except AttributeError:
        return 'desktop'


def ResponsiveRow(controls, **kwargs):
    """Row with desktop spacing defaults."""
    layout_props = {'alignment': ft.MainAxisAlignment.START, 'spacing': 20}
    layout_props.update(kwargs)
    return ft.Row(controls, **layout_props)


def ResponsiveCard(content, **kwargs):
    """Responsive Card component."""
    return ft.Card(
        content=ft.Container(content=content, padding=15),
        elevation=2,
        **kwargs
    )


def stat_cards(page, stat_data):
    """Row (or column on mobile) of stat cards.

    ``stat_data`` items are dicts with icon, color, title and value.
    """
    cards = []
    for data in stat_data:
        card_content = ft.Column([
            ft.Icon(data['icon'], size=32, color=data['color']),
            ft.Text(data['title'], size=12, weight=ft.FontWeight.BOLD),
            ft.Text(str(data['value']), size=24, weight=ft.FontWeight.BOLD, color=data['color']),
            ft.Text(data.get('subtext', ""), size=11, color=ft.Colors.GREY_600),
        ], alignment=ft.MainAxisAlignment.CENTER, spacing=5)
        cards.append(ft.Container(content=ResponsiveCard(card_content), expand=True))

    if get_breakpoint(page) == 'mobile':
        return ft.Column(cards, spacing=10)
    return ResponsiveRow(cards, alignment=ft.MainAxisAlignment.CENTER, spacing=15)


def empty_state(title, subtitle="", icon=ft.Icons.INBOX):
    return ft.Container(
        content=ft.Column([
            ft.Icon(icon, size=64, color=ft.Colors.GREY_400),
            ft.Text(title, size=16, color=ft.Colors.GREY_600),
            ft.Text(subtitle, size=12, color=ft.Colors.GREY_500),
        ], horizontal_alignment=ft.CrossAxisAlignment.CENTER),
        alignment=ft.alignment.center,
        padding=40,
    )


def loading_state(message="Loading..."):
    return ft.Container(
        content=ft.Column([
            ft.ProgressRing(),
            ft.Text(message, size=12, color=ft.Colors.GREY_600),
        ], horizontal_alignment=ft.CrossAxisAlignment.CENTER),
        alignment=ft.alignment.center,
        padding=40,
    )


def section_header(title, subtitle, color=ft.Colors.BLUE_700):
    return ft.Column([
        ft.Text(title, size=20, weight=ft.FontWeight.BOLD, color=color),
        ft.Text(subtitle, size=12, color=ft.Colors.GREY_600),
    ], spacing=2)


def bind_toasts(page: ft.Page, notifier):
    """Show the notifier's toasts as snackbars on ``page``."""
    def on_toast(toast):
        if not toast.visible:
            return
        sb = ft.SnackBar(
            content=ft.Text(toast.message),
            bgcolor=TOAST_COLORS.get(toast.kind, ft.Colors.BLUE_400),
            duration=notifier.duration_ms,
            open=True,
        )
        page.overlay.append(sb)
        page.update()

    notifier.subscribe(on_toast)


def show_confirm_dialog(page: ft.Page, title, message, on_confirm, on_cancel=None,
                        confirm_text="Delete"):
    """Show a modal confirmation; ``on_confirm`` may be a coroutine function."""
    async def confirmed(e):
        dialog.open = False
        page.update()
        result = on_confirm()
        if hasattr(result, "__await__"):
            await result

    def cancelled(e):
        dialog.open = False
        page.update()
        if on_cancel:
            on_cancel()

    dialog = ft.AlertDialog(
        modal=True,
        title=ft.Text(title),
        content=ft.Text(message),
        actions=[
            ft.TextButton("Cancel", on_click=cancelled),
            ft.TextButton(confirm_text, on_click=confirmed, style=ft.ButtonStyle(
                color=ft.Colors.RED_700,
            )),
        ],
    )
    page.overlay.append(dialog)
    dialog.open = True
    page.update()
    return dialog


class Field:
    """One input of a modal form."""
    def __init__(self, name, label, kind="text", hint="", options=None,
                 options_loader=None, width=None, read_only_on_edit=False):
        self.name = name
        self.label = label
        self.kind = kind              # text | number | select | date | multiline | password
        self.hint = hint
        self.options = options or []  # [(key, text)]
        self.options_loader = options_loader
        self.width = width
        self.read_only_on_edit = read_only_on_edit


def build_input(field: Field, value=None, editing=False):
    """Create the Flet control for ``field``."""
    read_only = editing and field.read_only_on_edit
    if field.kind == "select":
        return ft.Dropdown(
            label=field.label,
            hint_text=field.hint,
            options=[ft.dropdown.Option(str(key), text) for key, text in field.options],
            value=None if value is None else str(value),
            disabled=read_only,
            width=field.width,
        )
    return ft.TextField(
        label=field.label,
        hint_text=field.hint,
        value="" if value is None else str(value),
        read_only=read_only,
        multiline=field.kind == "multiline",
        password=field.kind == "password",
        can_reveal_password=field.kind == "password",
        keyboard_type=ft.KeyboardType.NUMBER if field.kind == "number" else None,
        width=field.width,
    )


def read_input(field: Field, control):
    value = control.value
    if field.kind == "select":
        return value if value not in ("", None) else None
    return (value or "").strip()
