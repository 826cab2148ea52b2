"""
Teacher view: attendance, coursework, grades, behaviour, reports and messages.
"""

import flet as ft

from ..sections.dashboard_sections import create_teacher_dashboard
from ..sections.screens import (
    create_assignments_section,
    create_behavior_section,
    create_lessons_section,
    create_quizzes_section,
)
from ..sections.teacher_sections import (
    create_attendance_section,
    create_gradebook_section,
    create_messages_section,
    create_quiz_builder_section,
    create_reports_section,
)
from .admin_view import tabs


def create_teacher_view(ctx, view_key):
    if view_key == "attendance":
        return create_attendance_section(ctx)
    if view_key == "assignments":
        return tabs([
            ("Assignments", ft.Icons.ASSIGNMENT, create_assignments_section(ctx)),
            ("Lessons", ft.Icons.EVENT_NOTE, create_lessons_section(ctx)),
            ("Assessments", ft.Icons.QUIZ, create_quizzes_section(ctx)),
            ("Quiz Builder", ft.Icons.EDIT_NOTE, create_quiz_builder_section(ctx)),
        ])
    if view_key == "gradebook":
        return create_gradebook_section(ctx)
    if view_key == "behavior":
        return create_behavior_section(ctx)
    if view_key == "reports":
        return create_reports_section(ctx)
    if view_key == "messages":
        return create_messages_section(ctx)
    return create_teacher_dashboard(ctx)
