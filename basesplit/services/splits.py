"""
Bill splitting: turn a total and a participant list into per-person amounts.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from basesplit.core.validation import is_valid_ethereum_address, normalize_address, validate_usdc_amount
from basesplit.schemas.payment_request import MultiSendRecipient, SplitMode, SplitParticipant, SplitType

# Custom split totals may be off by up to this much
SPLIT_TOLERANCE = 0.01
INVALID_ADDRESSES = "Some addresses are invalid. Please fix them before submitting."
EMPTY_AMOUNT = "Please enter an amount"


class SplitError(ValueError):
    pass


@dataclass(frozen=True)
class SplitShare:
    address: str
    amount: float


def per_person_amount(total: float, split_count: int) -> float:
    """Even share rounded to cents."""
    if split_count <= 0:
        return 0.0
    share = Decimal(repr(total)) / split_count
    return _cents(share)


def _cents(value) -> float:
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _check_addresses(addresses: Sequence[str], own: Optional[str] = None) -> List[str]:
    seen = []
    for raw in addresses:
        if not is_valid_ethereum_address((raw or "").strip()):
            raise SplitError(INVALID_ADDRESSES)
        address = normalize_address(raw)
        if address in seen:
            raise SplitError("This address is already added")
        if own and address == own:
            raise SplitError("Use 'Include myself' option instead of adding your own address")
        seen.append(address)
    return seen


def compute_split(
    participants: Sequence[SplitParticipant],
    total_str: str,
    own_address: Optional[str] = None,
    include_self: bool = False,
    mode: SplitMode = SplitMode.split,
    min_amount: float = 0.01,
    max_total: float = 100000,
    split_type: SplitType = SplitType.equal,
) -> List[SplitShare]:
    """
    Validate a split and compute one share per participant (the caller
    is never billed, include_self only widens the divisor of an equal split).

    Raises:
        SplitError: with a user-readable message.
    """
    trimmed = (total_str or "").strip()
    if not trimmed:
        raise SplitError("Please enter a total amount")
    try:
        total = float(trimmed)
    except ValueError:
        raise SplitError(f"Minimum amount is ${min_amount:.2f} USDC") from None
    if total != total or total < min_amount:
        raise SplitError(f"Minimum amount is ${min_amount:.2f} USDC")
    if total > max_total:
        raise SplitError(f"Maximum total is ${max_total:,.0f} USDC")

    own = own_address.lower() if own_address else None
    addresses = _check_addresses([p.address for p in participants], own)

    if mode == SplitMode.each:
        if not participants:
            raise SplitError("Add at least 1 recipient")
        return [SplitShare(address, total) for address in addresses]

    if split_type == SplitType.percentage:
        return _custom_shares(
            addresses,
            [_cents(Decimal(repr(total)) * Decimal(repr(p.percentage or 0)) / 100) for p in participants],
            min_amount,
            _percentage_total_error(participants),
        )
    if split_type == SplitType.fixed:
        return _custom_shares(
            addresses,
            [_cents(repr(p.fixed_amount or 0)) for p in participants],
            min_amount,
            _fixed_total_error(participants, total),
        )

    split_count = len(participants) + (1 if include_self else 0)
    if split_count < 2:
        raise SplitError("Add at least 2 participants to split the bill")

    share = per_person_amount(total, split_count)
    if share < min_amount:
        raise SplitError(f"Minimum amount is ${min_amount:.2f} USDC")
    return [SplitShare(address, share) for address in addresses]


def _percentage_total_error(participants: Sequence[SplitParticipant]) -> Optional[str]:
    total_percentage = sum(p.percentage or 0 for p in participants)
    if abs(total_percentage - 100) < SPLIT_TOLERANCE:
        return None
    return f"Percentages total {total_percentage:.1f}% (should be 100%)"


def _fixed_total_error(participants: Sequence[SplitParticipant], total: float) -> Optional[str]:
    total_fixed = sum(p.fixed_amount or 0 for p in participants)
    if abs(total_fixed - total) < SPLIT_TOLERANCE:
        return None
    return f"Fixed amounts total ${total_fixed:.2f} (should be ${total:.2f})"


def _custom_shares(
    addresses: List[str], amounts: List[float], min_amount: float, total_error: Optional[str]
) -> List[SplitShare]:
    if not addresses:
        raise SplitError("Add at least 1 recipient")
    if total_error:
        raise SplitError(total_error)
    if any(amount < min_amount for amount in amounts):
        raise SplitError(f"Minimum amount is ${min_amount:.2f} USDC")
    return [SplitShare(address, amount) for address, amount in zip(addresses, amounts)]


def _short_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def compute_multi_send(
    recipients: Sequence[MultiSendRecipient],
    uniform_amount: Optional[str] = None,
    min_amount: float = 0.01,
    max_amount: float = 10000,
) -> List[SplitShare]:
    """
    Validate a multi-recipient transfer. With uniform_amount every recipient
    gets that amount; otherwise each recipient's own amount is used.

    Raises:
        SplitError: with a user-readable message naming the recipient at fault.
    """
    if not recipients:
        raise SplitError("Add at least one recipient")
    addresses = _check_addresses([r.address for r in recipients])

    if uniform_amount is not None:
        validation = validate_usdc_amount(uniform_amount, min_amount, max_amount)
        if not validation.is_valid:
            error = validation.error
            raise SplitError(error if error == EMPTY_AMOUNT else f"{error} per recipient")
        return [SplitShare(address, validation.amount) for address in addresses]

    shares = []
    for recipient, address in zip(recipients, addresses):
        validation = validate_usdc_amount(recipient.amount, min_amount, max_amount)
        if not validation.is_valid:
            label = (recipient.label or "").strip() or _short_address(address)
            raise SplitError(f"{validation.error} for {label}")
        shares.append(SplitShare(address, validation.amount))
    return shares
