"""
Fee management sections for the accountant view.

Fee structures per class/term/year, invoice generation and listing, payment
recording and the collection dashboard.
"""

import logging
from datetime import date, timedelta

import flet as ft

from .. import resources
from ..aggregates import collection_summary, invoice_balance, structure_total
from ..config import PAYMENT_METHODS, TERMS
from ..controller import RequestSequence
from ..database import BackendError
from ..fees import find_invoice, generate_invoices, record_payment
from ..utils import format_money
from .resource_section import ScreenSpec, create_resource_section
from .screens import (
    choices,
    class_options,
    create_invoices_list_section,
    create_payments_list_section,
    options_loader,
    term_dropdown,
)
from .ui_components import Field, ResponsiveCard, section_header, stat_cards

logger = logging.getLogger(__name__)


def create_fee_structure_section(ctx):
    """Fee items of the selected class, term and academic year."""
    controller = ctx.track(resources.fee_structures_list(ctx.backend, ctx.session, ctx.notifier))
    load_classes = class_options(ctx)

    class_dropdown = ft.Dropdown(label="Class", width=220)
    term_select = term_dropdown(width=150)
    year_field = ft.TextField(label="Academic Year", value=str(date.today().year), width=150)
    total_text = ft.Text("", size=16, weight=ft.FontWeight.BOLD, color=ft.Colors.GREEN_700)

    def selection():
        return {
            "class_id": class_dropdown.value,
            "term": term_select.value,
            "academic_year": (year_field.value or "").strip(),
        }

    async def reload(e=None):
        # A later selection supersedes any load still in flight.
        if not class_dropdown.value:
            return
        await controller.load(filters=selection())

    def show_total(_):
        total_text.value = f"Total: {format_money(structure_total(controller.state.items))}"

    async def init_classes():
        options = await load_classes()
        class_dropdown.options = [ft.dropdown.Option(str(key), text) for key, text in options]
        if options and not class_dropdown.value:
            class_dropdown.value = str(options[0][0])
        ctx.page.update()
        await reload()

    class_dropdown.on_change = reload
    term_select.on_change = reload
    year_field.on_blur = reload
    controller.subscribe(show_total)

    spec = ScreenSpec(
        "Fee Structure", "Fees charged per class for a term",
        fields=[
            Field("fee_type_id", "Fee Type", kind="select",
                  options_loader=options_loader(ctx.backend, "fee_types")),
            Field("amount", "Amount", kind="number"),
        ],
        card_title=lambda row: (row.get("fee_type") or {}).get("name") or "Fee",
        card_lines=lambda row: [format_money(row.get("amount"))],
        icon=ft.Icons.ACCOUNT_TREE,
        color=ft.Colors.GREEN_700,
        can_edit=False,
        extra_payload=selection,
        form_title="Fee",
    )
    section = create_resource_section(
        ctx.page, controller, spec,
        header_controls=[ft.Row([class_dropdown, term_select, year_field, total_text],
                                spacing=10, wrap=True)],
    )
    ctx.page.run_task(init_classes)
    return section


def create_invoices_section(ctx):
    """Invoice list with the batch generation panel."""
    controller = ctx.track(resources.invoices_list(ctx.backend, ctx.session, ctx.notifier))
    load_classes = class_options(ctx)

    # State variables
    selected_student = None
    generating = False
    searches = RequestSequence()

    mode_group = ft.RadioGroup(
        value="class",
        content=ft.Row([
            ft.Radio(value="class", label="Whole class"),
            ft.Radio(value="student", label="Single student"),
        ]),
    )
    class_dropdown = ft.Dropdown(label="Class", width=220)
    student_search = ft.TextField(label="Find student", prefix_icon=ft.Icons.SEARCH,
                                  width=260, visible=False)
    student_results = ft.Column(spacing=2, visible=False)
    term_select = term_dropdown(width=150)
    year_field = ft.TextField(label="Academic Year", value=str(date.today().year), width=150)
    due_field = ft.TextField(label="Due Date", hint_text="YYYY-MM-DD",
                             value=(date.today() + timedelta(days=30)).isoformat(), width=160)
    progress = ft.ProgressRing(width=20, height=20, visible=False)

    def on_mode_change(e):
        single = mode_group.value == "student"
        class_dropdown.visible = not single
        student_search.visible = single
        student_results.visible = single
        ctx.page.update()

    async def search_students(e):
        nonlocal selected_student
        selected_student = None
        text = (student_search.value or "").strip()
        seq = searches.next()
        rows = []
        if len(text) >= 2:
            try:
                rows = await ctx.backend.query(
                    "users", columns="id, full_name, email, class_id",
                    filters={"role": "student"}, ilike={"full_name": f"%{text}%"}, limit=5,
                )
            except BackendError as ex:
                logger.error("Student search failed: %s", ex.message)
                rows = []
        if not searches.is_current(seq):
            return
        student_results.controls.clear()
        for row in rows:
            student_results.controls.append(ft.TextButton(
                f"{row['full_name']} ({row.get('email') or '-'})",
                on_click=lambda e, r=row: pick_student(r),
            ))
        ctx.page.update()

    def pick_student(row):
        nonlocal selected_student
        selected_student = row
        student_search.value = row["full_name"]
        student_results.controls.clear()
        ctx.page.update()

    async def generate(e):
        nonlocal generating
        if generating:
            return
        single = mode_group.value == "student"
        if single and selected_student is None:
            ctx.notifier.show("Please select a student", "warning")
            return
        generating = True
        progress.visible = True
        ctx.page.update()
        try:
            report = await generate_invoices(
                ctx.backend, term_select.value, (year_field.value or "").strip(),
                (due_field.value or "").strip(),
                class_id=None if single else class_dropdown.value,
                student=selected_student if single else None,
            )
        except ValueError as ex:
            ctx.notifier.show(str(ex), "warning")
        except BackendError as ex:
            ctx.notifier.show(ex.message, "error")
        else:
            ctx.notifier.show(report.summary, report.kind)
            if report.generated:
                await controller.load()
        finally:
            generating = False
            progress.visible = False
            ctx.page.update()

    async def init_classes():
        options = await load_classes()
        class_dropdown.options = [ft.dropdown.Option(str(key), text) for key, text in options]
        ctx.page.update()

    mode_group.on_change = on_mode_change
    student_search.on_change = search_students

    generate_panel = ft.Container(
        content=ft.Column([
            ft.Text("Generate Invoices", size=14, weight=ft.FontWeight.W_500),
            mode_group,
            ft.Row([class_dropdown, student_search, term_select, year_field, due_field],
                   spacing=10, wrap=True),
            student_results,
            ft.Row([
                ft.ElevatedButton("Generate", icon=ft.Icons.RECEIPT_LONG, on_click=generate),
                progress,
            ]),
        ], spacing=10),
        padding=15,
        border=ft.border.all(1, ft.Colors.OUTLINE),
        border_radius=10,
    )
    ctx.page.run_task(init_classes)
    return create_invoices_list_section(ctx, controller, header_controls=[generate_panel])


def create_payments_section(ctx):
    """Look up an invoice, record a payment and list payment history."""
    history, history_controller = create_payments_list_section(ctx)

    # State variables
    invoice = None

    number_field = ft.TextField(label="Invoice Number", prefix_icon=ft.Icons.RECEIPT,
                                hint_text="INV-...", width=260)
    invoice_info = ft.Column(spacing=4)
    amount_field = ft.TextField(label="Amount", prefix_icon=ft.Icons.MONETIZATION_ON,
                                keyboard_type=ft.KeyboardType.NUMBER, width=160)
    method_dropdown = ft.Dropdown(
        label="Method", width=180, value=PAYMENT_METHODS[0],
        options=[ft.dropdown.Option(key, text) for key, text in choices(PAYMENT_METHODS)],
    )
    reference_field = ft.TextField(label="Reference", width=200)
    record_button = ft.ElevatedButton("Record Payment", icon=ft.Icons.SAVE, disabled=True)

    def show_invoice():
        invoice_info.controls.clear()
        record_button.disabled = invoice is None
        if invoice is None:
            return
        invoice_info.controls.extend([
            ft.Text(f"{invoice['invoice_number']} · {(invoice.get('student') or {}).get('full_name', '-')}",
                    weight=ft.FontWeight.BOLD),
            ft.Text(f"Total {format_money(invoice.get('total_amount'))} · "
                    f"Paid {format_money(invoice.get('paid_amount'))} · "
                    f"Balance {format_money(invoice_balance(invoice))}",
                    size=12, color=ft.Colors.GREY_700),
            ft.Text(f"Status: {invoice.get('status')}", size=12, color=ft.Colors.GREY_700),
        ])

    async def lookup(e):
        nonlocal invoice
        try:
            invoice = await find_invoice(ctx.backend, number_field.value)
        except BackendError as ex:
            invoice = None
            ctx.notifier.show(f"Lookup failed: {ex.message}", "error")
        else:
            if invoice is None:
                ctx.notifier.show("Invoice not found", "warning")
        show_invoice()
        ctx.page.update()

    async def record(e):
        nonlocal invoice
        if invoice is None:
            return
        record_button.disabled = True
        ctx.page.update()
        try:
            invoice = await record_payment(
                ctx.backend, invoice, amount_field.value, method_dropdown.value,
                reference_field.value, recorded_by=ctx.session.user_id,
            )
        except ValueError as ex:
            ctx.notifier.show(str(ex), "warning")
        except BackendError as ex:
            ctx.notifier.show(f"Failed to record payment: {ex.message}", "error")
        else:
            ctx.notifier.show("Payment recorded successfully!", "success")
            amount_field.value = ""
            reference_field.value = ""
            await history_controller.load()
        show_invoice()
        ctx.page.update()

    number_field.on_submit = lookup
    record_button.on_click = record

    form = ft.Container(
        content=ft.Column([
            section_header("Record Payment", "Find an invoice by its number", ft.Colors.GREEN_700),
            ft.Row([number_field, ft.OutlinedButton("Find", icon=ft.Icons.SEARCH, on_click=lookup)]),
            invoice_info,
            ft.Row([amount_field, method_dropdown, reference_field, record_button],
                   spacing=10, wrap=True),
        ], spacing=10),
        padding=20,
    )
    return ft.Column([form, ft.Divider(), history], expand=True, scroll=ft.ScrollMode.AUTO)


def create_fee_dashboard_section(ctx):
    """Billed, collected and outstanding totals over all invoices."""
    controller = ctx.track(resources.invoices_list(ctx.backend, ctx.session, ctx.notifier))
    cards_holder = ft.Container()
    recent = ft.Column(spacing=6)

    def render(_=None):
        summary = collection_summary(controller.state.items)
        cards_holder.content = stat_cards(ctx.page, [
            {"icon": ft.Icons.RECEIPT_LONG, "color": ft.Colors.BLUE_700,
             "title": "Total Billed", "value": format_money(summary["billed"]),
             "subtext": f"{summary['count']} invoices"},
            {"icon": ft.Icons.PAYMENTS, "color": ft.Colors.GREEN_700,
             "title": "Collected", "value": format_money(summary["collected"])},
            {"icon": ft.Icons.PENDING_ACTIONS, "color": ft.Colors.ORANGE_700,
             "title": "Outstanding", "value": format_money(summary["outstanding"])},
            {"icon": ft.Icons.PIE_CHART, "color": ft.Colors.PURPLE_700,
             "title": "Collection Rate", "value": f"{summary['rate']}%"},
        ])
        recent.controls = [
            ft.Text(f"{row.get('invoice_number')} · {(row.get('student') or {}).get('full_name', '-')}"
                    f" · {format_money(row.get('total_amount'))} · {row.get('status')}", size=12)
            for row in controller.state.items[:5]
        ]
        ctx.page.update()

    controller.subscribe(render)
    ctx.page.run_task(controller.load)

    return ft.Container(
        content=ft.Column([
            section_header("Fee Dashboard", f"Collections across {', '.join(TERMS)}", ft.Colors.GREEN_700),
            ft.Divider(),
            cards_holder,
            ResponsiveCard(ft.Column([
                ft.Text("Recent Invoices", size=14, weight=ft.FontWeight.W_500),
                recent,
            ])),
        ], spacing=15, scroll=ft.ScrollMode.AUTO),
        padding=20,
        expand=True,
    )
