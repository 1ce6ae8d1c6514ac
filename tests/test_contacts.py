"""
Tests for the contacts orchestrator.
"""

from basesplit.core.errors import ErrorKind
from basesplit.services.contacts import PROFILE_NOT_FOUND

from conftest import ALICE, BOB, CAROL


async def test_add_requires_profile(make_services):
    contacts, _ = make_services(ALICE)
    assert await contacts.add_contact(BOB, "Bob") is None
    assert contacts.error == PROFILE_NOT_FOUND
    assert contacts.error_kind == ErrorKind.AUTHORIZATION


async def test_add_reports_store_outage_on_profile_lookup(queries, spy, make_services):
    await queries.upsert_profile(ALICE)
    contacts, _ = make_services(ALICE)
    spy.fail("get_profile_id_by_wallet", error="connection refused")

    assert await contacts.add_contact(BOB, "Bob") is None
    assert contacts.error == "connection refused"
    assert contacts.error_kind == ErrorKind.REMOTE
    assert "create_contact" not in spy.calls


async def test_add_validates_before_any_query(spy, make_services):
    contacts, _ = make_services(ALICE)

    assert await contacts.add_contact("0x123", "Bob") is None
    assert contacts.error == "Invalid wallet address"
    assert contacts.error_kind == ErrorKind.VALIDATION

    assert await contacts.add_contact(BOB, "   ") is None
    assert contacts.error == "Please enter a label"
    assert spy.calls == []


async def test_add_search_and_duplicate(queries, make_services):
    await queries.upsert_profile(ALICE)
    contacts, _ = make_services(ALICE)

    added = await contacts.add_contact(BOB.upper().replace("0X", "0x"), "  Bob  ")
    assert added.contact_wallet_address == BOB
    assert added.label == "Bob"
    await contacts.add_contact(CAROL, "Carol")

    assert contacts.is_contact(BOB.upper().replace("0X", "0x"))
    assert not contacts.is_contact(ALICE)
    assert [c.label for c in contacts.search("car")] == ["Carol"]
    assert [c.label for c in contacts.search("bbbb")] == ["Bob"]
    assert len(contacts.search("")) == 2

    assert await contacts.add_contact(BOB, "Bob twice") is None
    assert contacts.error == "This record already exists"
    assert len(contacts.contacts) == 2


async def test_load_writes_cache_and_hydrate_reads_it(queries, cache, make_services):
    await queries.upsert_profile(ALICE)
    contacts, _ = make_services(ALICE)
    await contacts.add_contact(BOB, "Bob")

    fresh, _ = make_services(ALICE)
    assert fresh.hydrate_from_cache() is True
    assert [c.label for c in fresh.contacts] == ["Bob"]


async def test_load_failure_keeps_cached_list(queries, spy, make_services):
    await queries.upsert_profile(ALICE)
    contacts, _ = make_services(ALICE)
    await contacts.add_contact(BOB, "Bob")

    spy.fail("get_contacts_by_owner_id", error="timeout")
    await contacts.load()
    assert contacts.error == "timeout"
    assert [c.label for c in contacts.contacts] == ["Bob"]


async def test_update_and_delete(queries, make_services):
    await queries.upsert_profile(ALICE)
    contacts, _ = make_services(ALICE)
    bob = await contacts.add_contact(BOB, "Bob", note="gym")

    updated = await contacts.update_contact(bob.id, label="Robert")
    assert updated.label == "Robert"
    assert updated.note == "gym"
    assert await contacts.update_contact(bob.id, label=" ") is None
    assert contacts.error == "Please enter a label"

    assert await contacts.delete_contact(bob.id) is True
    assert contacts.contacts == []

    assert await contacts.delete_contact(bob.id) is False
    assert contacts.error_kind == ErrorKind.NOT_FOUND
    assert contacts.error.startswith("Failed to delete contact: ")
