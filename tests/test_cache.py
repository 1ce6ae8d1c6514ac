"""
Tests for the per-wallet local cache.
"""

import uuid
from datetime import datetime, timedelta

from basesplit.models.payment_request import PaymentRequestStatus
from basesplit.schemas.contact import ContactResponse
from basesplit.schemas.payment_request import PaymentRequestResponse
from basesplit.services.cache import LocalCache, limit_cache_size

from conftest import ALICE, BOB

NOW = datetime(2026, 1, 1, 12, 0, 0)


def make_contact(i: int) -> ContactResponse:
    return ContactResponse(
        id=uuid.uuid4(),
        owner_id=uuid.uuid4(),
        contact_wallet_address="0x" + format(i, "040x"),
        label=f"friend {i}",
        created_at=NOW - timedelta(minutes=i),
        updated_at=NOW - timedelta(minutes=i),
    )


def make_request(i: int, payer: str = ALICE) -> PaymentRequestResponse:
    return PaymentRequestResponse(
        id=uuid.uuid4(),
        requester_id=uuid.uuid4(),
        payer_wallet_address=payer.lower(),
        token_address="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        chain_id=8453,
        amount=1_000_000 + i,
        status=PaymentRequestStatus.pending,
        created_at=NOW - timedelta(minutes=i),
        updated_at=NOW - timedelta(minutes=i),
        requester_wallet_address=BOB,
    )


def test_limit_cache_size_keeps_most_recent():
    assert limit_cache_size(list(range(25)), 20) == list(range(20))
    assert limit_cache_size([1, 2], 20) == [1, 2]


def test_miss_returns_none(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    assert cache.read_contacts(ALICE) is None
    assert cache.read_requests(ALICE) is None


def test_contacts_roundtrip_capped_and_keyed_by_lowercase_wallet(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    contacts = [make_contact(i) for i in range(25)]
    cache.write_contacts(ALICE, contacts)

    assert (tmp_path / "cache" / f"basesplit-contacts-{ALICE.lower()}.json").exists()
    cached = cache.read_contacts(ALICE.lower())
    assert len(cached) == 20
    assert cached[0].id == contacts[0].id


def test_requests_roundtrip(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    incoming = [make_request(i) for i in range(3)]
    sent = [make_request(i, payer=BOB) for i in range(30)]
    cache.write_requests(ALICE, incoming, sent)

    cached_incoming, cached_sent = cache.read_requests(ALICE)
    assert [r.id for r in cached_incoming] == [r.id for r in incoming]
    assert len(cached_sent) == 20


def test_corrupt_entry_is_a_miss(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    (tmp_path / "cache").mkdir()
    (tmp_path / "cache" / f"basesplit-requests-{ALICE.lower()}.json").write_text("{not json")
    (tmp_path / "cache" / f"basesplit-contacts-{ALICE.lower()}.json").write_text('[{"id": 1}]')

    assert cache.read_requests(ALICE) is None
    assert cache.read_contacts(ALICE) is None


def test_unwritable_directory_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the cache dir should be")
    cache = LocalCache(blocker / "cache")

    cache.write_contacts(ALICE, [make_contact(1)])
    assert cache.read_contacts(ALICE) is None


def test_clear_wallet_and_clear_all(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    cache.write_contacts(ALICE, [make_contact(1)])
    cache.write_requests(ALICE, [make_request(1)], [])
    cache.write_contacts(BOB, [make_contact(2)])
    (tmp_path / "cache" / "unrelated.json").write_text("{}")

    cache.clear_wallet(ALICE)
    assert cache.read_contacts(ALICE) is None
    assert cache.read_requests(ALICE) is None
    assert cache.read_contacts(BOB) is not None

    cache.write_requests(ALICE, [make_request(1)], [])
    assert cache.clear_all() == 2
    assert cache.read_contacts(BOB) is None
    assert (tmp_path / "cache" / "unrelated.json").exists()
