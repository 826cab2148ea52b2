#!/usr/bin/env python3
"""
Tests for form validation rules and numeric parsing.
"""

import os
import sys
import unittest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from school_portal.validation import (
    email,
    number_range,
    parse_number,
    parse_numbers,
    phone,
    required,
    validate,
)


class TestRules(unittest.TestCase):

    def test_required(self):
        rule = required("name", "Name is required")
        self.assertEqual(rule({"name": "  "}), "Name is required")
        self.assertEqual(rule({}), "Name is required")
        self.assertIsNone(rule({"name": "Grade 9"}))

    def test_required_default_message(self):
        self.assertEqual(required("grade_level")({}), "Grade level is required")

    def test_email_shape(self):
        rule = email()
        self.assertIsNone(rule({"email": "ama@school.test"}))
        self.assertEqual(rule({"email": "ama@school"}), "Email is invalid")
        self.assertIsNone(rule({"email": ""}))

    def test_phone_shape(self):
        rule = phone()
        self.assertIsNone(rule({"phone": "+233 (20) 123-4567"}))
        self.assertEqual(rule({"phone": "call me"}), "Phone number is invalid")

    def test_number_range(self):
        rule = number_range("capacity", minimum=1, integer=True)
        self.assertIsNone(rule({"capacity": "30"}))
        self.assertEqual(rule({"capacity": "0"}), "Capacity must be at least 1")
        self.assertEqual(rule({"capacity": "2.5"}), "Capacity must be at least 1")
        self.assertEqual(rule({"capacity": "thirty"}), "Capacity must be at least 1")
        self.assertIsNone(rule({"capacity": ""}))

    def test_between_message(self):
        rule = number_range("hours_per_week", minimum=0, maximum=40)
        self.assertEqual(rule({"hours_per_week": 41}), "Hours per week must be between 0 and 40")


class TestValidate(unittest.TestCase):

    def test_first_failing_rule_per_field_wins(self):
        rules = (
            required("email", "Email is required"),
            email("email", "Email is invalid"),
            required("full_name", "Name is required"),
        )
        self.assertEqual(validate({"email": ""}, rules),
                         {"email": "Email is required", "full_name": "Name is required"})
        self.assertEqual(validate({"email": "x", "full_name": "Kofi"}, rules),
                         {"email": "Email is invalid"})
        self.assertEqual(validate({"email": "k@s.io", "full_name": "Kofi"}, rules), {})


class TestParsing(unittest.TestCase):

    def test_parse_number(self):
        self.assertEqual(parse_number("12"), 12)
        self.assertEqual(parse_number(" 12.5 "), 12.5)
        self.assertIsNone(parse_number(""))
        self.assertEqual(parse_number(7), 7)
        with self.assertRaises(ValueError):
            parse_number("abc")
        with self.assertRaises(ValueError):
            parse_number(True)

    def test_non_finite_rejected(self):
        for text in ("nan", "inf", "-inf", "NaN", "Infinity"):
            with self.assertRaises(ValueError):
                parse_number(text)
        with self.assertRaises(ValueError):
            parse_number(float("inf"))

    def test_non_finite_fails_range_rules(self):
        capacity = number_range("capacity", minimum=1, integer=True)
        fee = number_range("fee", minimum=0)
        for text in ("nan", "inf", "-inf"):
            self.assertEqual(capacity({"capacity": text}), "Capacity must be at least 1")
            self.assertEqual(fee({"fee": text}), "Fee must be at least 0")
        print("✓ nan / inf blocked by range rules")

    def test_parse_numbers_only_declared_fields(self):
        data = parse_numbers({"fee": "500", "grade_level": "10"}, ("fee", "capacity"))
        self.assertEqual(data, {"fee": 500, "grade_level": "10"})


if __name__ == "__main__":
    unittest.main()
