"""Tests for utility functions."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from watchmerchant.utils import (
    isoformat,
    money,
    parse_timestamp,
    search_variants,
    slugify,
    to_decimal,
)


class TestMoney:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2.675", "2.68"),
            ("2.665", "2.67"),
            ("2.664", "2.66"),
            (10, "10.00"),
            (0.1, "0.10"),
        ],
    )
    def test_rounds_half_up(self, value, expected):
        assert money(value) == Decimal(expected)

    def test_to_decimal_avoids_float_noise(self):
        assert to_decimal(450.5) == Decimal("450.5")
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")


class TestSearchVariants:
    @pytest.mark.parametrize(
        "term,expected",
        [
            ("watches", {"watches", "watch"}),
            ("Boxes", {"boxes", "box"}),
            ("accessories", {"accessories", "accessory"}),
            ("straps", {"straps", "strap"}),
            ("glass", {"glass"}),
            ("diver", {"diver"}),
            ("s", {"s"}),
        ],
    )
    def test_variants(self, term, expected):
        assert search_variants(term) == expected


class TestTimestamps:
    def test_isoformat_uses_z(self):
        value = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)
        assert isoformat(value) == "2024-06-01T12:30:00Z"

    def test_isoformat_converts_to_utc(self):
        value = datetime(2024, 6, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert isoformat(value) == "2024-06-01T12:00:00Z"

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2024-01-15T10:00:00Z")
        assert parsed == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        assert parse_timestamp("2024-01-15T10:00:00").tzinfo is not None


def test_slugify():
    assert slugify("Dive Watch") == "dive-watch"
    assert slugify("  Luxury  ") == "luxury"
