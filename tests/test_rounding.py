"""Rounding and currency formatting tests."""

import pytest

from splitfree.money import format_amount, round_currency, to_percent


class TestRoundCurrency:
    """Tests for round_currency."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (1.234, 1.23),
            (1.235, 1.24),
            (1.005, 1.01),  # float 1.005 is stored as 1.00499999...
            (2.675, 2.68),
            (10, 10.0),
            (0.001, 0.0),
            (-1.005, -1.01),
            (-3.333, -3.33),
            (33.333333333, 33.33),
        ],
    )
    def test_half_up(self, amount, expected):
        assert round_currency(amount) == expected

    def test_float_noise(self):
        """Sums that drift in binary come back to the intended cents."""
        assert round_currency(0.1 + 0.2) == 0.3
        assert round_currency(100 - 66.66) == 33.34


class TestToPercent:
    """Tests for to_percent."""

    @pytest.mark.parametrize(
        "fraction,expected",
        [(0.25, 25), (0.125, 13), (1 / 3, 33), (0.995, 100), (0, 0)],
    )
    def test_whole_percent(self, fraction, expected):
        assert to_percent(fraction) == expected


class TestFormatAmount:
    """Tests for format_amount."""

    def test_usd(self):
        assert format_amount(1234.5) == "$1,234.50"

    def test_eur(self):
        assert format_amount(3.2, "EUR") == "€3.20"

    def test_lowercase_code(self):
        assert format_amount(3.2, "gbp") == "£3.20"

    def test_negative(self):
        assert format_amount(-5) == "-$5.00"

    def test_zero(self):
        assert format_amount(0) == "$0.00"

    def test_yen_has_no_cents(self):
        assert format_amount(1500, "JPY") == "¥1,500"

    def test_unknown_currency(self):
        assert format_amount(12, "CHF") == "CHF 12.00"
