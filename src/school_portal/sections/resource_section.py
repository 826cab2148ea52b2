"""
Generic management section bound to a ``ResourceList``.

Every CRUD screen of the portal is the same shape: a header, a search field, a
category dropdown, a list of cards with edit / delete buttons, an add/edit
modal and a delete confirmation. Screens describe themselves with a
``ScreenSpec`` and this module renders them.
"""

import logging

import flet as ft

from ..utils import export_rows_to_csv
from .ui_components import (
    build_input,
    empty_state,
    loading_state,
    read_input,
    section_header,
    show_confirm_dialog,
)

logger = logging.getLogger(__name__)


class ScreenSpec:
    """How one resource is presented: fields, card text, filters and export."""
    def __init__(self, title, subtitle, fields, card_title, card_lines=None,
                 icon=ft.Icons.LIST, color=ft.Colors.BLUE_700,
                 category_label=None, category_options=None, category_loader=None,
                 export_columns=None, export_prefix=None, search_hint="Search",
                 can_create=True, can_edit=True, can_delete=True,
                 extra_actions=None, extra_payload=None, confirm_message=None,
                 form_title=None):
        self.title = title
        self.subtitle = subtitle
        self.fields = fields
        self.card_title = card_title
        self.card_lines = card_lines or (lambda row: [])
        self.icon = icon
        self.color = color
        self.category_label = category_label
        self.category_options = category_options or []
        self.category_loader = category_loader
        self.export_columns = export_columns
        self.export_prefix = export_prefix
        self.search_hint = search_hint
        self.can_create = can_create
        self.can_edit = can_edit
        self.can_delete = can_delete
        self.extra_actions = extra_actions
        self.extra_payload = extra_payload
        self.confirm_message = confirm_message or (
            lambda row: f"Are you sure you want to delete '{card_title(row)}'?\nThis action cannot be undone."
        )
        self.form_title = form_title or title.rstrip("s")


def create_resource_section(page: ft.Page, controller, spec: ScreenSpec, header_controls=None):
    """Build the section; the first load starts immediately on ``page``'s loop."""

    # State variables
    form_dialog = None
    form_inputs = {}
    form_error = ft.Text("", color=ft.Colors.RED_700, size=12, visible=False)

    search_field = ft.TextField(
        label=f"Search {controller.label}",
        hint_text=spec.search_hint,
        prefix_icon=ft.Icons.SEARCH,
        expand=True,
        on_change=lambda e: controller.set_search(e.control.value),
    )

    category_dropdown = ft.Dropdown(
        label=spec.category_label or "Filter",
        value="all",
        options=[ft.dropdown.Option("all", "All")],
        width=200,
        visible=spec.category_label is not None,
        on_change=lambda e: controller.set_category(e.control.value),
    )

    list_view = ft.ListView(spacing=10, padding=20, expand=True)
    count_text = ft.Text("", size=12, color=ft.Colors.GREY_600)

    def set_category_options(options):
        category_dropdown.options = [ft.dropdown.Option("all", "All")] + [
            ft.dropdown.Option(str(key), text) for key, text in options
        ]

    set_category_options(spec.category_options)

    def build_card(row):
        lines = [
            ft.Text(line, size=12, color=ft.Colors.GREY_600)
            for line in spec.card_lines(row) if line
        ]
        actions = list(spec.extra_actions(row)) if spec.extra_actions else []
        if spec.can_edit:
            actions.append(ft.IconButton(
                icon=ft.Icons.EDIT,
                icon_color=ft.Colors.BLUE_700,
                tooltip="Edit",
                on_click=lambda e, r=row: controller.open_edit(r),
            ))
        if spec.can_delete:
            actions.append(ft.IconButton(
                icon=ft.Icons.DELETE,
                icon_color=ft.Colors.RED_700,
                tooltip="Delete",
                on_click=lambda e, r=row: confirm_delete(r),
            ))
        title = spec.card_title(row) or "-"
        return ft.Card(
            content=ft.Container(
                content=ft.Row([
                    ft.Container(
                        content=ft.CircleAvatar(
                            content=ft.Text(title[0].upper(), size=20, weight=ft.FontWeight.BOLD),
                            bgcolor=ft.Colors.BLUE_100,
                            color=ft.Colors.BLUE_900,
                        ),
                        width=50,
                    ),
                    ft.Column([
                        ft.Text(title, weight=ft.FontWeight.BOLD, size=16),
                        *lines,
                    ], spacing=5, expand=True),
                    ft.Row(actions, spacing=0),
                ], alignment=ft.MainAxisAlignment.SPACE_BETWEEN),
                padding=15,
            ),
        )

    def render_list():
        state = controller.state
        phase = state.phase
        rows = controller.visible_items
        list_view.controls.clear()
        if phase == "loading" and not state.items:
            list_view.controls.append(loading_state(f"Loading {controller.label}..."))
        elif phase == "errored" and not state.items:
            list_view.controls.append(empty_state(
                f"Could not load {controller.label}", state.error, icon=ft.Icons.ERROR_OUTLINE
            ))
        elif not rows:
            list_view.controls.append(empty_state(
                f"No {controller.label} found",
                "Try a different search" if state.items else f"Add your first {controller.noun}",
            ))
        else:
            list_view.controls.extend(build_card(row) for row in rows)
        count_text.value = f"{len(rows)} of {len(state.items)} {controller.label}"

    def sync_form():
        """Open, refresh or close the modal to match the controller's intent."""
        nonlocal form_dialog
        intent = controller.intent
        if intent.modal_open:
            if form_dialog is None or not form_dialog.open:
                open_form()
            for name, control in form_inputs.items():
                control.error_text = intent.field_errors.get(name)
            form_error.value = intent.error or ""
            form_error.visible = bool(intent.error)
            save_button.disabled = intent.submitting
        elif form_dialog is not None and form_dialog.open:
            form_dialog.open = False

    def render(_=None):
        render_list()
        sync_form()
        page.update()

    async def submit(e):
        payload = {
            field.name: read_input(field, form_inputs[field.name])
            for field in spec.fields
        }
        if spec.extra_payload is not None:
            payload.update(spec.extra_payload())
        await controller.save(payload)

    save_button = ft.ElevatedButton("Save", icon=ft.Icons.SAVE, on_click=submit)

    def open_form():
        nonlocal form_dialog
        intent = controller.intent
        editing = intent.mode == "edit"
        target = intent.target or {}
        form_inputs.clear()
        for field in spec.fields:
            form_inputs[field.name] = build_input(field, target.get(field.name), editing)
        form_error.value = ""
        form_error.visible = False
        save_button.text = "Update" if editing else "Save"

        form_dialog = ft.AlertDialog(
            modal=True,
            title=ft.Text(f"{'Edit' if editing else 'Add'} {spec.form_title}"),
            content=ft.Container(
                content=ft.Column(
                    [form_error, *form_inputs.values()],
                    spacing=12, tight=True, scroll=ft.ScrollMode.AUTO,
                ),
                width=420,
            ),
            actions=[
                ft.TextButton("Cancel", on_click=lambda e: controller.close_modal()),
                save_button,
            ],
            actions_alignment=ft.MainAxisAlignment.END,
        )
        page.overlay.append(form_dialog)
        form_dialog.open = True

    def confirm_delete(row):
        controller.request_delete(row)
        show_confirm_dialog(
            page, "Confirm Delete", spec.confirm_message(row),
            on_confirm=controller.confirm_delete,
            on_cancel=controller.cancel_delete,
        )

    def export_csv(e):
        rows = controller.visible_items
        if not rows:
            controller.notifier.show("Nothing to export", "warning")
            return
        try:
            filename = export_rows_to_csv(rows, spec.export_columns, prefix=spec.export_prefix or controller.collection)
        except OSError as ex:
            logger.error("CSV export failed: %s", ex)
            controller.notifier.show(f"Export failed: {ex}", "error")
            return
        controller.notifier.show(f"Exported {len(rows)} {controller.label} to {filename}", "success")

    async def load_options():
        for field in spec.fields:
            if field.options_loader is not None:
                field.options = await field.options_loader()
        if spec.category_loader is not None:
            set_category_options(await spec.category_loader())

    async def mount():
        await load_options()
        await controller.load()

    controller.subscribe(render)
    render_list()
    page.run_task(mount)

    toolbar = [search_field, category_dropdown]
    if spec.export_columns:
        toolbar.append(ft.OutlinedButton("Export CSV", icon=ft.Icons.DOWNLOAD, on_click=export_csv))
    if spec.can_create:
        toolbar.append(ft.ElevatedButton(
            f"Add {spec.form_title}", icon=ft.Icons.ADD,
            on_click=lambda e: controller.open_create(),
        ))

    return ft.Container(
        content=ft.Column([
            section_header(spec.title, spec.subtitle, spec.color),
            *(header_controls or []),
            ft.Divider(),
            ft.Row(toolbar, spacing=10, wrap=True),
            count_text,
            ft.Container(content=list_view, expand=True),
        ], spacing=15, expand=True),
        padding=20,
        expand=True,
    )
