"""Tests for display formatting helpers."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal

from expensemanager.models import User
from expensemanager.services.formatting import display_name, format_currency, format_date, format_time


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "₹1,234.50"
    assert format_currency(Decimal("-150"), "$") == "-$150.00"
    assert format_currency(0) == "₹0.00"


def test_format_date_and_time():
    assert format_date(date(2024, 1, 5)) == "5 January 2024"
    assert format_time(time(13, 5)) == "1:05 PM"
    assert format_time(time(0, 0)) == "12:00 AM"
    assert format_time(None) == ""


def test_display_name_falls_back():
    users = [User(id=1, name="Alice")]

    assert display_name(users, 1) == "Alice"
    assert display_name(users, 2) == "Unknown user"
