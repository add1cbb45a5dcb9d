from decimal import Decimal

import pytest

from services.api.src.morpho_market.utils.units import format_fixed, format_units, to_decimal


class TestToDecimal:
    def test_scales_exactly(self):
        assert to_decimal(1_500_000, 6) == Decimal("1.5")

    def test_accepts_string_amounts(self):
        assert to_decimal("600000000000000000000", 18) == Decimal(600)

    def test_no_rounding_on_uint256_values(self):
        raw = 2**256 - 1

        assert format_units(raw, 0) == str(raw)
        assert format_units(raw, 18).replace(".", "") == str(raw)


class TestFormatUnits:
    @pytest.mark.parametrize("raw,decimals,expected", [
        (600 * 10**18, 18, "600"),
        (1_500_000, 6, "1.5"),
        (1, 18, "0.000000000000000001"),
        (10**30, 18, "1000000000000"),
        (123_456_789, 6, "123.456789"),
        (0, 18, "0"),
        (-2_500_000, 6, "-2.5"),
    ])
    def test_formats(self, raw, decimals, expected):
        assert format_units(raw, decimals) == expected


class TestFormatFixed:
    def test_rounds_to_places(self):
        assert format_fixed(1_234_567, 6, 2) == "1.23"

    def test_pads_to_places(self):
        assert format_fixed(400 * 10**18, 18, 4) == "400.0000"

    def test_zero(self):
        assert format_fixed(0, 6, 2) == "0.00"
