"""
Form validation rules.

A rule is a ``(field, check)`` pair where ``check(value)`` returns an error
message or ``None``. ``validate`` runs the rules against a payload before any
network call and returns the first message per field.
"""

import math
import re

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def parse_number(value):
    """Parse a form value as int or float; blank gives ``None``.

    Raises ``ValueError`` for text that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if _blank(value):
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return number


class Rule:
    def __init__(self, field, check):
        self.field = field
        self.check = check

    def __call__(self, payload):
        return self.check(payload.get(self.field))


def required(field, message=None):
    message = message or f"{field.replace('_', ' ').capitalize()} is required"
    return Rule(field, lambda value: message if _blank(value) else None)


def email(field="email", message="Email is invalid"):
    def check(value):
        if _blank(value):
            return None
        return None if EMAIL_PATTERN.search(str(value)) else message
    return Rule(field, check)


def phone(field="phone", message="Phone number is invalid"):
    def check(value):
        if _blank(value):
            return None
        return None if PHONE_PATTERN.match(str(value).strip()) else message
    return Rule(field, check)


def number_range(field, minimum=None, maximum=None, integer=False, message=None):
    """Numeric check; blank values pass (combine with ``required``)."""
    label = field.replace("_", " ").capitalize()
    if message is None:
        if minimum is not None and maximum is not None:
            message = f"{label} must be between {minimum} and {maximum}"
        elif minimum is not None:
            message = f"{label} must be at least {minimum}"
        elif maximum is not None:
            message = f"{label} must be at most {maximum}"
        else:
            message = f"{label} must be a number"

    def check(value):
        if _blank(value):
            return None
        try:
            number = parse_number(value)
        except ValueError:
            return message
        if integer and number != int(number):
            return message
        if minimum is not None and number < minimum:
            return message
        if maximum is not None and number > maximum:
            return message
        return None
    return Rule(field, check)


def validate(payload, rules):
    """Return ``{field: message}`` for every failing field (first rule wins)."""
    errors = {}
    for rule in rules:
        if rule.field in errors:
            continue
        message = rule(payload)
        if message:
            errors[rule.field] = message
    return errors


def parse_numbers(payload, numeric_fields):
    """Copy of ``payload`` with the declared numeric fields parsed."""
    data = dict(payload)
    for field in numeric_fields:
        if field in data:
            data[field] = parse_number(data[field])
    return data
