"""
Teacher sections: attendance marking, gradebook, direct messages, the
quiz builder and class reports.
"""

import logging
from datetime import date

import flet as ft

from ..attendance import AttendanceSheet
from ..config import ATTENDANCE_STATUSES
from ..database import BackendError
from ..gradebook import Gradebook
from ..messaging import Conversation
from ..quizzes import save_quiz, validate_quiz
from ..reports import ClassReport
from .screens import class_options
from .ui_components import ResponsiveCard, empty_state, loading_state, section_header, stat_cards

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "present": ft.Colors.GREEN_700,
    "absent": ft.Colors.RED_700,
    "late": ft.Colors.ORANGE_700,
}


def _class_dropdown(ctx, on_change):
    dropdown = ft.Dropdown(label="Class", width=240, on_change=on_change)
    load = class_options(ctx, teacher_only=True)

    async def fill():
        options = await load()
        dropdown.options = [ft.dropdown.Option(str(key), text) for key, text in options]
        if options and not dropdown.value:
            dropdown.value = str(options[0][0])
        ctx.page.update()
        if dropdown.value:
            await on_change(None)

    return dropdown, fill


def create_attendance_section(ctx):
    """Mark attendance for one of the teacher's classes on a date."""
    sheet = ctx.track(AttendanceSheet(ctx.backend, ctx.session, ctx.notifier))

    student_list = ft.ListView(spacing=6, padding=10, expand=True)
    report_holder = ft.Container()
    date_field = ft.TextField(label="Date", value=date.today().isoformat(), width=160,
                              prefix_icon=ft.Icons.CALENDAR_TODAY, read_only=True)
    save_button = ft.ElevatedButton("Save Attendance", icon=ft.Icons.SAVE)

    async def reload(e=None):
        if class_dropdown.value:
            await sheet.load(class_dropdown.value, date_field.value)

    class_dropdown, fill_classes = _class_dropdown(ctx, reload)

    def render(_=None):
        student_list.controls.clear()
        save_button.disabled = sheet.saving or sheet.loading or bool(sheet.error) or not sheet.students
        if sheet.loading and not sheet.students:
            student_list.controls.append(loading_state("Loading students..."))
        elif not sheet.students:
            student_list.controls.append(empty_state("No students in this class"))
        for student in sheet.students:
            student_list.controls.append(ft.Card(content=ft.Container(
                content=ft.Row([
                    ft.Column([
                        ft.Text(student["full_name"], weight=ft.FontWeight.BOLD),
                        ft.Text(f"Roll No: {student.get('roll_number') or '-'}", size=12,
                                color=ft.Colors.GREY_600),
                    ], expand=True, spacing=2),
                    ft.RadioGroup(
                        value=sheet.status_of(student["id"]),
                        on_change=lambda e, sid=student["id"]: sheet.mark(sid, e.control.value),
                        content=ft.Row([
                            ft.Radio(value=status, label=status.capitalize(),
                                     fill_color=STATUS_COLORS[status])
                            for status in ATTENDANCE_STATUSES
                        ]),
                    ),
                ]),
                padding=10,
            )))
        ctx.page.update()

    async def save(e):
        if await sheet.save():
            await show_report()

    async def show_report(e=None):
        if not sheet.class_id:
            return
        try:
            summary = await sheet.report()
        except BackendError as ex:
            ctx.notifier.show(f"Failed to load report: {ex.message}", "error")
            return
        absentees = ", ".join(
            (row.get("student") or {}).get("full_name", "-") for row in summary["absentees"]
        ) or "None"
        report_holder.content = ft.Column([
            stat_cards(ctx.page, [
                {"icon": ft.Icons.CHECK_CIRCLE, "color": ft.Colors.GREEN_700,
                 "title": "Present", "value": summary["present"]},
                {"icon": ft.Icons.CANCEL, "color": ft.Colors.RED_700,
                 "title": "Absent", "value": summary["absent"]},
                {"icon": ft.Icons.SCHEDULE, "color": ft.Colors.ORANGE_700,
                 "title": "Late", "value": summary["late"]},
                {"icon": ft.Icons.PERCENT, "color": ft.Colors.BLUE_700,
                 "title": "Attendance Rate", "value": f"{summary['rate']}%"},
            ]),
            ft.Text(f"Absent: {absentees}", size=12, color=ft.Colors.GREY_700),
        ])
        ctx.page.update()

    def open_calendar(e):
        """Open date picker dialog."""
        async def handle_date_change(e):
            date_field.value = e.control.value.strftime("%Y-%m-%d")
            ctx.page.update()
            await reload()

        date_picker = ft.DatePicker(
            on_change=handle_date_change,
            first_date=date(2020, 1, 1),
            last_date=date(2035, 12, 31),
        )
        ctx.page.overlay.append(date_picker)
        date_picker.open = True
        ctx.page.update()

    date_field.on_click = open_calendar
    save_button.on_click = save
    sheet.subscribe(render)
    ctx.page.run_task(fill_classes)

    return ft.Container(
        content=ft.Column([
            section_header("Attendance", "Mark attendance for your class", ft.Colors.GREEN_700),
            ft.Divider(),
            ft.Row([
                class_dropdown,
                date_field,
                ft.IconButton(icon=ft.Icons.CALENDAR_MONTH, tooltip="Pick date", on_click=open_calendar),
                ft.OutlinedButton("All Present", on_click=lambda e: sheet.mark_all("present")),
                ft.OutlinedButton("All Absent", on_click=lambda e: sheet.mark_all("absent")),
                save_button,
                ft.TextButton("Daily Report", icon=ft.Icons.ASSESSMENT, on_click=show_report),
            ], spacing=10, wrap=True),
            report_holder,
            ft.Container(content=student_list, expand=True),
        ], spacing=15, expand=True),
        padding=20,
        expand=True,
    )


def create_gradebook_section(ctx):
    """Students x assignments grid with per-student and per-assignment averages."""
    book = ctx.track(Gradebook(ctx.backend, ctx.notifier))
    table_holder = ft.Container(expand=True)
    class_average_text = ft.Text("", size=14, weight=ft.FontWeight.BOLD, color=ft.Colors.BLUE_700)

    async def reload(e=None):
        if class_dropdown.value:
            await book.load(class_dropdown.value)

    class_dropdown, fill_classes = _class_dropdown(ctx, reload)

    def average_text(value):
        return "-" if value is None else f"{value}%"

    def raw_average(value):
        return "-" if value is None else str(value)

    def grade_cell(student_id, assignment):
        grade = book.grades.get((student_id, assignment["id"]))

        async def on_blur(e):
            if (e.control.value or "").strip() == ("" if grade is None else str(grade)):
                return
            await book.save_grade(student_id, assignment["id"], e.control.value)

        return ft.DataCell(ft.TextField(
            value="" if grade is None else str(grade),
            width=70, dense=True, text_align=ft.TextAlign.CENTER,
            keyboard_type=ft.KeyboardType.NUMBER,
            hint_text=f"/{assignment.get('points') or 100}",
            on_blur=on_blur,
        ))

    def render(_=None):
        if book.loading and not book.students:
            table_holder.content = loading_state("Loading gradebook...")
        elif not book.students or not book.assignments:
            table_holder.content = empty_state(
                "Nothing to grade yet", "Add students and assignments to this class"
            )
        else:
            columns = [ft.DataColumn(ft.Text("Student"))] + [
                ft.DataColumn(ft.Text(a["title"]), tooltip=f"Due {a.get('due_date')}")
                for a in book.assignments
            ] + [ft.DataColumn(ft.Text("Average"))]
            rows = [
                ft.DataRow(cells=[ft.DataCell(ft.Text(s["full_name"]))]
                           + [grade_cell(s["id"], a) for a in book.assignments]
                           + [ft.DataCell(ft.Text(average_text(book.student_average(s["id"])),
                                                  weight=ft.FontWeight.BOLD))])
                for s in book.students
            ]
            rows.append(ft.DataRow(cells=[ft.DataCell(ft.Text("Class average", italic=True))]
                                   + [ft.DataCell(ft.Text(raw_average(book.assignment_average(a["id"]))))
                                      for a in book.assignments]
                                   + [ft.DataCell(ft.Text(""))]))
            table_holder.content = ft.Row(
                [ft.DataTable(columns=columns, rows=rows)], scroll=ft.ScrollMode.AUTO
            )
        class_average_text.value = f"Class average: {average_text(book.class_average())}"
        ctx.page.update()

    book.subscribe(render)
    ctx.page.run_task(fill_classes)

    return ft.Container(
        content=ft.Column([
            section_header("Gradebook", "Enter grades; they are saved when a cell loses focus"),
            ft.Divider(),
            ft.Row([class_dropdown, class_average_text], spacing=20),
            table_holder,
        ], spacing=15, expand=True, scroll=ft.ScrollMode.AUTO),
        padding=20,
        expand=True,
    )


def create_messages_section(ctx):
    """Contacts on the left, the selected thread on the right."""
    conversation = ctx.track(Conversation(ctx.backend, ctx.session, ctx.notifier))

    contact_list = ft.ListView(spacing=4, padding=10, expand=True)
    thread = ft.ListView(spacing=8, padding=10, expand=True, auto_scroll=True)
    thread_title = ft.Text("Select a contact", size=16, weight=ft.FontWeight.BOLD)
    draft_field = ft.TextField(hint_text="Type a message", expand=True, shift_enter=True)

    def bubble(message):
        mine = message.get("sender_id") == ctx.session.user_id
        pending = str(message.get("id", "")).startswith("temp-")
        return ft.Row([
            ft.Container(
                content=ft.Column([
                    ft.Text(message.get("content", ""), color=ft.Colors.WHITE if mine else None),
                    ft.Text(("Sending..." if pending else (message.get("created_at") or "")[11:16]),
                            size=10, color=ft.Colors.WHITE70 if mine else ft.Colors.GREY_600),
                ], spacing=2, tight=True),
                bgcolor=ft.Colors.BLUE_600 if mine else ft.Colors.GREY_200,
                padding=10,
                border_radius=10,
            ),
        ], alignment=ft.MainAxisAlignment.END if mine else ft.MainAxisAlignment.START)

    def render(_=None):
        contact_list.controls = [
            ft.ListTile(
                leading=ft.CircleAvatar(content=ft.Text((c.get("full_name") or "?")[0].upper())),
                title=ft.Text(c.get("full_name") or c.get("email")),
                subtitle=ft.Text(c.get("role") or "", size=11),
                selected=conversation.contact is not None and conversation.contact["id"] == c["id"],
                on_click=lambda e, contact=c: ctx.page.run_task(conversation.select, contact),
            )
            for c in conversation.contacts
        ] or [empty_state("No contacts")]
        if conversation.contact is None:
            thread_title.value = "Select a contact"
            thread.controls = []
        else:
            thread_title.value = conversation.contact.get("full_name") or "Conversation"
            if conversation.loading:
                thread.controls = [loading_state("Loading messages...")]
            else:
                thread.controls = [bubble(m) for m in conversation.messages] or [
                    empty_state("No messages yet", "Say hello", icon=ft.Icons.CHAT_BUBBLE_OUTLINE)
                ]
        ctx.page.update()

    async def send(e):
        conversation.draft = draft_field.value or ""
        draft_field.value = ""
        await conversation.send()

    async def mount():
        await conversation.load_contacts()
        try:
            await conversation.start()
        except BackendError as ex:
            logger.error("Realtime subscription failed: %s", ex.message)
            ctx.notifier.show("Live updates are unavailable", "warning")

    draft_field.on_submit = send
    conversation.subscribe(render)
    ctx.page.run_task(mount)

    return ft.Container(
        content=ft.Row([
            ft.Container(
                content=ft.Column([
                    ft.Text("Contacts", size=16, weight=ft.FontWeight.BOLD),
                    contact_list,
                ], expand=True),
                width=260,
                border=ft.border.only(right=ft.BorderSide(1, ft.Colors.OUTLINE_VARIANT)),
            ),
            ft.Column([
                thread_title,
                ft.Divider(),
                thread,
                ft.Row([draft_field, ft.IconButton(icon=ft.Icons.SEND, on_click=send)]),
            ], expand=True),
        ], expand=True),
        padding=20,
        expand=True,
    )


def create_quiz_builder_section(ctx):
    """Compose a multiple-choice quiz and save it as a draft or published."""
    questions = []

    title_field = ft.TextField(label="Quiz Title", expand=True)
    description_field = ft.TextField(label="Description", multiline=True)
    duration_field = ft.TextField(label="Duration (minutes)", value="30", width=180,
                                  keyboard_type=ft.KeyboardType.NUMBER)
    question_list = ft.Column(spacing=10)

    async def no_reload(e=None):
        return None

    class_dropdown, fill_classes = _class_dropdown(ctx, no_reload)

    def add_question(e=None):
        questions.append({
            "question_text": "",
            "type": "multiple_choice",
            "points": 1,
            "options": [{"option_text": "", "is_correct": i == 0} for i in range(4)],
        })
        render()

    def remove_question(index):
        questions.pop(index)
        render()

    def question_card(index, question):
        def set_text(e):
            question["question_text"] = e.control.value

        def set_option(e, option):
            option["option_text"] = e.control.value

        def set_correct(e):
            for i, option in enumerate(question["options"]):
                option["is_correct"] = str(i) == e.control.value

        correct = next((str(i) for i, o in enumerate(question["options"]) if o["is_correct"]), "0")
        return ResponsiveCard(ft.Column([
            ft.Row([
                ft.Text(f"Question {index + 1}", weight=ft.FontWeight.BOLD),
                ft.IconButton(icon=ft.Icons.DELETE, icon_color=ft.Colors.RED_700,
                              on_click=lambda e: remove_question(index)),
            ], alignment=ft.MainAxisAlignment.SPACE_BETWEEN),
            ft.TextField(label="Question", value=question["question_text"], on_change=set_text),
            ft.RadioGroup(
                value=correct,
                on_change=set_correct,
                content=ft.Column([
                    ft.Row([
                        ft.Radio(value=str(i)),
                        ft.TextField(label=f"Option {i + 1}", value=option["option_text"], expand=True,
                                     on_change=lambda e, o=option: set_option(e, o)),
                    ])
                    for i, option in enumerate(question["options"])
                ]),
            ),
        ]))

    def render():
        question_list.controls = [question_card(i, q) for i, q in enumerate(questions)] or [
            empty_state("No questions yet", "Add your first question", icon=ft.Icons.QUIZ)
        ]
        ctx.page.update()

    async def save(status):
        quiz = {
            "title": (title_field.value or "").strip(),
            "description": description_field.value or "",
            "class_id": class_dropdown.value,
            "duration_minutes": int(duration_field.value) if (duration_field.value or "").isdigit() else 30,
        }
        problems = validate_quiz(quiz, questions)
        if problems:
            ctx.notifier.show(problems[0], "warning")
            return
        try:
            await save_quiz(ctx.backend, ctx.session.user_id, quiz, questions, status)
        except BackendError as ex:
            ctx.notifier.show(ex.message, "error")
            return
        ctx.notifier.show("Quiz published!" if status == "published" else "Quiz saved as draft", "success")
        questions.clear()
        title_field.value = ""
        description_field.value = ""
        render()

    ctx.page.run_task(fill_classes)
    render()

    return ft.Container(
        content=ft.Column([
            section_header("Quiz Builder", "Create multiple-choice quizzes", ft.Colors.PURPLE_700),
            ft.Divider(),
            ft.Row([title_field, class_dropdown, duration_field], spacing=10, wrap=True),
            description_field,
            question_list,
            ft.Row([
                ft.OutlinedButton("Add Question", icon=ft.Icons.ADD, on_click=add_question),
                ft.OutlinedButton("Save Draft", icon=ft.Icons.SAVE,
                                  on_click=lambda e: ctx.page.run_task(save, "draft")),
                ft.ElevatedButton("Publish", icon=ft.Icons.PUBLISH,
                                  on_click=lambda e: ctx.page.run_task(save, "published")),
            ], spacing=10),
        ], spacing=15, scroll=ft.ScrollMode.AUTO),
        padding=20,
        expand=True,
    )


def create_reports_section(ctx):
    """Class performance: average grade, attendance rate and behaviour balance."""
    report = ctx.track(ClassReport(ctx.backend, ctx.notifier))
    body = ft.Container(expand=True)

    async def reload(e=None):
        if class_dropdown.value:
            await report.load(class_dropdown.value)

    class_dropdown, fill_classes = _class_dropdown(ctx, reload)

    def render(_=None):
        summary = report.summary
        if report.loading and summary is None:
            body.content = loading_state("Loading report...")
        elif summary is None:
            body.content = empty_state("No report yet", report.error or "Select one of your classes")
        else:
            average = summary["average_grade"]
            body.content = ft.Column([
                stat_cards(ctx.page, [
                    {"icon": ft.Icons.TRENDING_UP, "color": ft.Colors.INDIGO_700,
                     "title": "Avg. Performance", "value": "-" if average is None else f"{average}%",
                     "subtext": f"Based on {summary['graded']} graded submissions"},
                    {"icon": ft.Icons.PEOPLE, "color": ft.Colors.GREEN_700,
                     "title": "Attendance Rate", "value": f"{summary['attendance_rate']}%",
                     "subtext": f"{summary['attendance_records']} records"},
                    {"icon": ft.Icons.STAR, "color": ft.Colors.AMBER_700,
                     "title": "Positive Behaviour", "value": f"{summary['positive_rate']}%",
                     "subtext": f"{summary['behavior_total']} records, {summary['behavior_points']:+d} points"},
                ]),
                ft.ProgressBar(value=summary["positive_rate"] / 100, color=ft.Colors.AMBER_400,
                               bgcolor=ft.Colors.RED_200),
                ft.Row([
                    ft.Text(f"Positive: {summary['positive']}", size=12, color=ft.Colors.GREY_700),
                    ft.Text(f"Negative: {summary['negative']}", size=12, color=ft.Colors.GREY_700),
                ], alignment=ft.MainAxisAlignment.SPACE_BETWEEN),
            ], spacing=15)
        ctx.page.update()

    report.subscribe(render)
    ctx.page.run_task(fill_classes)

    return ft.Container(
        content=ft.Column([
            section_header("Reports & Analytics", "Insights into class performance and engagement"),
            ft.Divider(),
            class_dropdown,
            body,
        ], spacing=15, expand=True, scroll=ft.ScrollMode.AUTO),
        padding=20,
        expand=True,
    )
