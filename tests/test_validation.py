"""
Tests for amount and address validation helpers.
"""

import pytest

from basesplit.core.validation import (
    format_usdc,
    is_valid_ethereum_address,
    to_micro_units,
    validate_usdc_amount,
)


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_amount_asks_for_input(raw):
    result = validate_usdc_amount(raw)
    assert result.is_valid is False
    assert result.error == "Please enter an amount"
    assert result.amount == 0


@pytest.mark.parametrize("raw", ["0", "0.005", "-5", "abc", "nan", "12abc"])
def test_below_minimum_or_non_numeric(raw):
    result = validate_usdc_amount(raw)
    assert result.is_valid is False
    assert result.error == "Minimum amount is $0.01 USDC"


def test_above_maximum_uses_thousands_separator():
    result = validate_usdc_amount("10000.01")
    assert result.is_valid is False
    assert result.error == "Maximum amount is $10,000 USDC"


def test_custom_bounds_in_messages():
    assert validate_usdc_amount("0.5", min_amount=1).error == "Minimum amount is $1.00 USDC"
    assert validate_usdc_amount("5", max_amount=2.5).error == "Maximum amount is $2.5 USDC"


@pytest.mark.parametrize("raw,expected", [("0.01", 0.01), (" 10 ", 10.0), ("10000", 10000.0), ("12.34", 12.34)])
def test_valid_amounts_parse_to_float(raw, expected):
    result = validate_usdc_amount(raw)
    assert result.is_valid is True
    assert result.error is None
    assert result.amount == expected


def test_to_micro_units_is_exact_for_decimal_inputs():
    assert to_micro_units(10) == 10_000_000
    assert to_micro_units(0.01) == 10_000
    assert to_micro_units(12.34) == 12_340_000
    assert to_micro_units(0.1 + 0.2) == 300_000


def test_format_usdc():
    assert format_usdc(None) == "0.00"
    assert format_usdc(0) == "0.00"
    assert format_usdc(10_000_000) == "10.00"
    assert format_usdc(1_234_567) == "1.23"
    assert format_usdc(1_235_000) == "1.24"


def test_ethereum_address_format():
    assert is_valid_ethereum_address("0x" + "a" * 40)
    assert is_valid_ethereum_address("0xAbCdEf0123456789aBcDeF0123456789AbCdEf01")
    assert not is_valid_ethereum_address("0x" + "a" * 39)
    assert not is_valid_ethereum_address("a" * 42)
    assert not is_valid_ethereum_address("0x" + "g" * 40)
    assert not is_valid_ethereum_address("")
    assert not is_valid_ethereum_address(None)
