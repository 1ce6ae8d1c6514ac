"""
Shared validation utilities for amount and address inputs.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Optional

USDC_DECIMALS = 6
USDC_UNIT = 10 ** USDC_DECIMALS

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


@dataclass(frozen=True)
class AmountValidationResult:
    is_valid: bool
    error: Optional[str]
    amount: float


def _format_minimum(value: float) -> str:
    return f"{value:.2f}"


def _format_maximum(value: float) -> str:
    # Thousands separators, at most three fraction digits, no trailing zeros
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return text


def validate_usdc_amount(
    amount_str: str,
    min_amount: float = 0.01,
    max_amount: float = 10000,
) -> AmountValidationResult:
    """
    Validate a USDC amount string.

    Args:
        amount_str: The raw amount string from input.
        min_amount: Minimum allowed amount (default: 0.01).
        max_amount: Maximum allowed amount (default: 10000).

    Returns:
        AmountValidationResult with the parsed amount when valid, 0 otherwise.
    """
    trimmed = (amount_str or "").strip()

    if not trimmed:
        return AmountValidationResult(False, "Please enter an amount", 0)

    try:
        amount = float(trimmed)
    except ValueError:
        amount = math.nan

    if math.isnan(amount) or amount < min_amount:
        return AmountValidationResult(
            False, f"Minimum amount is ${_format_minimum(min_amount)} USDC", 0
        )

    if amount > max_amount:
        return AmountValidationResult(
            False, f"Maximum amount is ${_format_maximum(max_amount)} USDC", 0
        )

    return AmountValidationResult(True, None, amount)


def to_micro_units(amount: float) -> int:
    """Convert a USDC amount to integer micro-units, rounding down."""
    scaled = Decimal(repr(amount)) * USDC_UNIT
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def format_usdc(micro_units: Optional[int]) -> str:
    """Format integer micro-units as a two-decimal USDC string."""
    if not micro_units:
        return "0.00"
    value = Decimal(micro_units) / USDC_UNIT
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def is_valid_ethereum_address(address: Optional[str]) -> bool:
    return bool(address) and bool(_ADDRESS_RE.match(address))


def normalize_address(address: str) -> str:
    return address.strip().lower()
