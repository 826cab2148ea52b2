"""
Views module for the School Portal.

One view per role; each maps a navigation key to its sections.
"""

from .accountant_view import create_accountant_view
from .admin_view import create_admin_view
from .student_view import create_student_view
from .teacher_view import create_teacher_view

ROLE_VIEWS = {
    "admin": create_admin_view,
    "teacher": create_teacher_view,
    "accountant": create_accountant_view,
    "student": create_student_view,
}

__all__ = [
    'ROLE_VIEWS',
    'create_accountant_view',
    'create_admin_view',
    'create_student_view',
    'create_teacher_view',
]
