from __future__ import annotations

from decimal import Decimal

import pytest

from goalvault.domain.amounts import AmountBounds, format_units, parse_units


def test_parse_units_scales_by_decimals() -> None:
    assert parse_units("12.5", 6) == 12_500_000
    assert parse_units("1", 18) == 10**18
    assert parse_units(" 1,000 ", 0) == 1000
    assert parse_units(Decimal("0.000001"), 6) == 1


@pytest.mark.parametrize("value", ["-1", "abc", "", "NaN", "Infinity", True])
def test_parse_units_rejects_bad_input(value) -> None:
    with pytest.raises(ValueError):
        parse_units(value, 6)


def test_parse_units_rejects_excess_precision() -> None:
    with pytest.raises(ValueError, match="more than 6 decimal places"):
        parse_units("0.0000001", 6)


def test_format_units_trims_trailing_zeros() -> None:
    assert format_units(12_500_000, 6) == "12.5"
    assert format_units(10**18, 18) == "1"
    assert format_units(0, 6) == "0"


def test_format_units_with_fixed_places() -> None:
    assert format_units(12_500_000, 6, places=2) == "12.50"


def test_bounds_accept_values_in_range() -> None:
    bounds = AmountBounds()

    assert bounds.validate("1") == Decimal("1")
    assert bounds.validate("100000") == Decimal("100000")


def test_bounds_messages() -> None:
    bounds = AmountBounds()

    with pytest.raises(ValueError, match="positive"):
        bounds.validate("0")
    with pytest.raises(ValueError, match="Minimum contribution is 1"):
        bounds.validate("0.5")
    with pytest.raises(ValueError, match="Maximum contribution is 100,000"):
        bounds.validate("100000.01")
