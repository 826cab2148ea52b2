"""
Configuration for the School Portal.

Values are read from the environment, with a local ``.env`` file loaded first
so a developer checkout only needs that file filled in.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    """Read an integer environment variable, falling back to ``default``."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Backend
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "documents")

# UI feedback
TOAST_DURATION_MS = _int_env("TOAST_DURATION_MS", 3000)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# App constants
APP_TITLE = "School Management System"
TERMS = ["Term 1", "Term 2", "Term 3"]
ROLES = ["admin", "teacher", "accountant", "student"]
ATTENDANCE_STATUSES = ["present", "absent", "late"]
INVOICE_STATUSES = ["unpaid", "partial", "paid", "overdue"]
PAYMENT_METHODS = ["cash", "mobile_money", "bank_transfer", "cheque"]
