"""
Tests for history merging/filtering and bill split computation.
"""

import uuid
from datetime import datetime, timedelta

import pytest

from basesplit.models.payment_request import PaymentRequestStatus, PaymentRequestType
from basesplit.models.profile import HistoryFilter
from basesplit.schemas.payment_request import (
    Direction,
    HistoryEntry,
    MultiSendRecipient,
    PaymentRequestResponse,
    SplitMode,
    SplitParticipant,
    SplitType,
)
from basesplit.services.history import build_history, merge_request_lists, pending_requests
from basesplit.services.splits import SplitError, compute_multi_send, compute_split, per_person_amount

from conftest import ALICE, BOB, CAROL

NOW = datetime(2026, 1, 1, 12, 0, 0)


def make_request(
    payer=ALICE,
    requester=BOB,
    status=PaymentRequestStatus.paid,
    type=PaymentRequestType.request,
    created_minutes_ago=0,
    paid_minutes_ago=None,
    amount=1_000_000,
):
    return PaymentRequestResponse(
        id=uuid.uuid4(),
        requester_id=uuid.uuid4(),
        type=type,
        payer_wallet_address=payer.lower(),
        token_address="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        chain_id=8453,
        amount=amount,
        status=status,
        created_at=NOW - timedelta(minutes=created_minutes_ago),
        updated_at=NOW,
        paid_at=NOW - timedelta(minutes=paid_minutes_ago) if paid_minutes_ago is not None else None,
        requester_wallet_address=requester.lower(),
    )


def test_self_request_appears_once_tagged_received():
    own = make_request(payer=ALICE, requester=ALICE)
    merged = merge_request_lists([own], [own])
    assert len(merged) == 1
    assert merged[0].direction == Direction.received


def test_merge_sorts_by_paid_at_for_paid_else_created_at():
    old_but_recently_paid = make_request(created_minutes_ago=60, paid_minutes_ago=1)
    newer_cancelled = make_request(status=PaymentRequestStatus.cancelled, created_minutes_ago=5)
    oldest = make_request(status=PaymentRequestStatus.rejected, created_minutes_ago=90)

    merged = merge_request_lists([oldest, newer_cancelled], [old_but_recently_paid])
    assert [e.request.id for e in merged] == [old_but_recently_paid.id, newer_cancelled.id, oldest.id]


def test_history_excludes_pending_and_filters_by_contacts():
    from_bob = make_request(payer=ALICE, requester=BOB, created_minutes_ago=1)
    to_carol = make_request(payer=CAROL, requester=ALICE, created_minutes_ago=2)
    pending = make_request(status=PaymentRequestStatus.pending)

    everything = build_history([from_bob, pending], [to_carol])
    assert [e.request.id for e in everything] == [from_bob.id, to_carol.id]

    contacts_only = build_history([from_bob], [to_carol], HistoryFilter.contacts_only, [BOB.upper().replace("0X", "0x")])
    assert [e.counterparty for e in contacts_only] == [BOB]

    external = build_history([from_bob], [to_carol], HistoryFilter.external_only, [BOB])
    assert [e.counterparty for e in external] == [CAROL]


def test_balance_change_signs():
    paid_request_received = HistoryEntry(request=make_request(), direction=Direction.received)
    paid_request_sent = HistoryEntry(request=make_request(), direction=Direction.sent)
    transfer_sent = HistoryEntry(request=make_request(type=PaymentRequestType.transfer), direction=Direction.sent)
    transfer_received = HistoryEntry(request=make_request(type=PaymentRequestType.transfer), direction=Direction.received)
    cancelled = HistoryEntry(request=make_request(status=PaymentRequestStatus.cancelled), direction=Direction.sent)

    # Paying a request sends money out; a request I sent brings money in
    assert paid_request_received.balance_change == -1_000_000
    assert paid_request_sent.balance_change == 1_000_000
    assert transfer_sent.balance_change == -1_000_000
    assert transfer_received.balance_change == 1_000_000
    assert cancelled.balance_change == 0


def test_pending_requests_excludes_transfers_and_terminal():
    pending = make_request(status=PaymentRequestStatus.pending)
    transfer = make_request(type=PaymentRequestType.transfer)
    paid = make_request()
    assert pending_requests([pending, transfer, paid]) == [pending]


def test_per_person_amount_rounds_half_up():
    assert per_person_amount(100, 3) == 33.33
    assert per_person_amount(0.05, 2) == 0.03
    assert per_person_amount(10, 0) == 0.0


def test_split_evenly_with_self():
    participants = [SplitParticipant(address=BOB), SplitParticipant(address=CAROL.upper().replace("0X", "0x"))]
    shares = compute_split(participants, "90", own_address=ALICE, include_self=True)
    assert [(s.address, s.amount) for s in shares] == [(BOB, 30.0), (CAROL, 30.0)]


def test_split_each_mode_bills_full_amount():
    shares = compute_split([SplitParticipant(address=BOB)], "25", mode=SplitMode.each)
    assert [(s.address, s.amount) for s in shares] == [(BOB, 25.0)]


@pytest.mark.parametrize(
    "participants,total,kwargs,message",
    [
        ([BOB, CAROL], "", {}, "Please enter a total amount"),
        ([BOB, CAROL], "abc", {}, "Minimum amount is $0.01 USDC"),
        ([BOB, CAROL], "100001", {}, "Maximum total is $100,000 USDC"),
        ([BOB, "0x123"], "10", {}, "Some addresses are invalid. Please fix them before submitting."),
        ([BOB, BOB.upper().replace("0X", "0x")], "10", {}, "This address is already added"),
        ([BOB, ALICE], "10", {"own_address": ALICE.lower()}, "Use 'Include myself' option instead of adding your own address"),
        ([BOB], "10", {}, "Add at least 2 participants to split the bill"),
        ([], "10", {"mode": SplitMode.each}, "Add at least 1 recipient"),
        ([BOB, CAROL, "0x" + "d" * 40], "0.01", {"include_self": True}, "Minimum amount is $0.01 USDC"),
    ],
)
def test_split_errors(participants, total, kwargs, message):
    with pytest.raises(SplitError) as exc:
        compute_split([SplitParticipant(address=a) for a in participants], total, **kwargs)
    assert str(exc.value) == message


def test_percentage_split_shares_in_cents():
    participants = [
        SplitParticipant(address=BOB, percentage=33.33),
        SplitParticipant(address=CAROL, percentage=66.67),
    ]
    shares = compute_split(participants, "10", split_type=SplitType.percentage)
    assert [(s.address, s.amount) for s in shares] == [(BOB, 3.33), (CAROL, 6.67)]


def test_fixed_split_uses_given_amounts():
    participants = [
        SplitParticipant(address=BOB, fixed_amount=12.5),
        SplitParticipant(address=CAROL, fixed_amount=17.5),
    ]
    shares = compute_split(participants, "30", split_type=SplitType.fixed)
    assert [(s.address, s.amount) for s in shares] == [(BOB, 12.5), (CAROL, 17.5)]


@pytest.mark.parametrize(
    "participants,total,split_type,message",
    [
        (
            [SplitParticipant(address=BOB, percentage=50), SplitParticipant(address=CAROL, percentage=40)],
            "10",
            SplitType.percentage,
            "Percentages total 90.0% (should be 100%)",
        ),
        (
            [SplitParticipant(address=BOB, fixed_amount=5), SplitParticipant(address=CAROL, fixed_amount=15)],
            "30",
            SplitType.fixed,
            "Fixed amounts total $20.00 (should be $30.00)",
        ),
        (
            [SplitParticipant(address=BOB, fixed_amount=30), SplitParticipant(address=CAROL)],
            "30",
            SplitType.fixed,
            "Minimum amount is $0.01 USDC",
        ),
        ([], "30", SplitType.percentage, "Add at least 1 recipient"),
    ],
)
def test_custom_split_errors(participants, total, split_type, message):
    with pytest.raises(SplitError) as exc:
        compute_split(participants, total, split_type=split_type)
    assert str(exc.value) == message


def test_multi_send_uniform_and_per_recipient_amounts():
    uniform = compute_multi_send([MultiSendRecipient(address=BOB), MultiSendRecipient(address=CAROL)], "4")
    assert [(s.address, s.amount) for s in uniform] == [(BOB, 4.0), (CAROL, 4.0)]

    each = compute_multi_send([
        MultiSendRecipient(address=BOB, amount="1.25"),
        MultiSendRecipient(address=CAROL, amount="9"),
    ])
    assert [(s.address, s.amount) for s in each] == [(BOB, 1.25), (CAROL, 9.0)]


@pytest.mark.parametrize(
    "recipients,amount,message",
    [
        ([], "1", "Add at least one recipient"),
        ([MultiSendRecipient(address="0x123")], "1", "Some addresses are invalid. Please fix them before submitting."),
        ([MultiSendRecipient(address=BOB), MultiSendRecipient(address=BOB)], "1", "This address is already added"),
        ([MultiSendRecipient(address=BOB)], "", "Please enter an amount"),
        ([MultiSendRecipient(address=BOB)], "0", "Minimum amount is $0.01 USDC per recipient"),
        ([MultiSendRecipient(address=BOB)], None, "Please enter an amount for 0xbbbb...bbbb"),
        ([MultiSendRecipient(address=BOB, label="Bob", amount="10001")], None, "Maximum amount is $10,000 USDC for Bob"),
    ],
)
def test_multi_send_errors(recipients, amount, message):
    with pytest.raises(SplitError) as exc:
        compute_multi_send(recipients, amount)
    assert str(exc.value) == message
