"""Unit tests for the order helpers that need no database."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import ValidationError
from app.services.order_service import (
    estimated_delivery,
    generate_order_number,
    is_forward_transition,
    parse_sort,
    phones_match,
    to_base36,
)


class TestOrderNumber:
    def test_format(self):
        number = generate_order_number("anv")
        assert re.fullmatch(r"ANV-[0-9A-Z]+-[0-9A-Z]{4}", number)

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"
        assert to_base36(36**3 + 35) == "100Z"

    def test_numbers_differ(self):
        numbers = {generate_order_number("ANV") for _ in range(50)}
        assert len(numbers) > 1


class TestPhonesMatch:
    @pytest.mark.parametrize(
        "supplied",
        ["9876543210", "+91 98765 43210", "98765-43210", "3210"],
    )
    def test_matches_last_four_digits(self, supplied):
        assert phones_match("+91 98765 43210", supplied)

    @pytest.mark.parametrize("supplied", ["9876543211", "", "abcd"])
    def test_mismatch(self, supplied):
        assert not phones_match("+91 98765 43210", supplied)


class TestEstimatedDelivery:
    def test_a_week_after_order(self):
        placed = datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)
        assert estimated_delivery("shipped", placed) == placed + timedelta(days=7)

    def test_naive_date_treated_as_utc(self):
        placed = datetime(2026, 3, 1, 10, 30)
        assert estimated_delivery("pending", placed).tzinfo == timezone.utc

    @pytest.mark.parametrize("status", ["delivered", "cancelled", "refunded"])
    def test_none_when_final(self, status):
        assert estimated_delivery(status, datetime.now(timezone.utc)) is None


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "confirmed"),
            ("confirmed", "processing"),
            ("processing", "shipped"),
            ("shipped", "delivered"),
            ("delivered", "refunded"),
        ],
    )
    def test_forward(self, current, target):
        assert is_forward_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [("pending", "delivered"), ("shipped", "pending"), ("refunded", "confirmed")],
    )
    def test_unusual(self, current, target):
        assert not is_forward_transition(current, target)


class TestParseSort:
    def test_default(self):
        assert parse_sort(None) == ("created_at", True)

    def test_descending_prefix(self):
        assert parse_sort("-total") == ("total", True)
        assert parse_sort("order_number") == ("order_number", False)

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            parse_sort("shipping_email")
