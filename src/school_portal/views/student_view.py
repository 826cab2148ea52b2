"""
Student view: own dashboard and messages with the class teacher.
"""

from ..sections.dashboard_sections import create_student_dashboard
from ..sections.teacher_sections import create_messages_section


def create_student_view(ctx, view_key):
    if view_key == "messages":
        return create_messages_section(ctx)
    return create_student_dashboard(ctx)
