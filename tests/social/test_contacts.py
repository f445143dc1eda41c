"""Tests for the contact and mute stores."""

from __future__ import annotations

import pytest

from trustweb.core.exceptions import ValidationException
from trustweb.relays.records import PubkeyReference
from trustweb.social.contacts import Contact, ContactStore
from trustweb.social.mutes import Mute, MuteStore


@pytest.fixture
def contacts(store):
    return ContactStore(store)


@pytest.fixture
def mutes(store):
    return MuteStore(store)


# ============================================================================
# ContactStore Tests
# ============================================================================


class TestContactStore:
    def test_add_and_get(self, contacts, pubkeys):
        contact = contacts.add(pubkeys["A"], "wss://a.relay", "alice")
        assert contact.pubkey == pubkeys["A"]
        assert contact.added_at > 0

        stored = contacts.get(pubkeys["A"])
        assert stored == contact

    def test_add_lowercases(self, contacts):
        contacts.add("AB" * 32)
        assert contacts.contains("ab" * 32)
        assert contacts.contains("AB" * 32)

    def test_add_replaces_hint_and_petname(self, contacts, pubkeys):
        contacts.add(pubkeys["A"], "wss://a.relay", "alice")
        contacts.add(pubkeys["A"])
        stored = contacts.get(pubkeys["A"])
        assert stored.relay_hint is None
        assert stored.petname is None
        assert contacts.count() == 1

    def test_add_invalid_pubkey(self, contacts):
        with pytest.raises(ValidationException) as exc_info:
            contacts.add("npub1notsupported")
        assert exc_info.value.field == "pubkey"
        assert contacts.count() == 0

    def test_remove(self, contacts, pubkeys):
        contacts.add(pubkeys["A"])
        assert contacts.remove(pubkeys["A"]) is True
        assert contacts.remove(pubkeys["A"]) is False
        assert not contacts.contains(pubkeys["A"])

    def test_get_missing(self, contacts, pubkeys):
        assert contacts.get(pubkeys["A"]) is None

    def test_list_most_recent_first(self, contacts, pubkeys):
        contacts.add(pubkeys["A"])
        contacts.add(pubkeys["B"])
        contacts.add(pubkeys["C"])
        assert [c.pubkey for c in contacts.list()] == [pubkeys["C"], pubkeys["B"], pubkeys["A"]]

    def test_bulk_upsert_mixed_inputs(self, contacts, pubkeys):
        written = contacts.bulk_upsert(
            [
                pubkeys["A"],
                PubkeyReference(pubkeys["B"], "wss://b.relay", None),
                (pubkeys["C"], None, "carol"),
                Contact(pubkeys["D"], petname="dave"),
            ]
        )
        assert written == 4
        assert contacts.get(pubkeys["B"]).relay_hint == "wss://b.relay"
        assert contacts.get(pubkeys["C"]).petname == "carol"
        assert contacts.get(pubkeys["D"]).petname == "dave"

    def test_bulk_upsert_empty(self, contacts):
        assert contacts.bulk_upsert([]) == 0

    def test_bulk_upsert_last_duplicate_wins(self, contacts, pubkeys):
        contacts.bulk_upsert([(pubkeys["A"], None, "first"), (pubkeys["A"], None, "second")])
        assert contacts.count() == 1
        assert contacts.get(pubkeys["A"]).petname == "second"

    def test_bulk_upsert_rejects_whole_batch(self, contacts, pubkeys):
        with pytest.raises(ValidationException):
            contacts.bulk_upsert([pubkeys["A"], "bogus"])
        assert contacts.count() == 0

    def test_replace_all(self, contacts, pubkeys):
        contacts.bulk_upsert([pubkeys["A"], pubkeys["B"]])
        assert contacts.replace_all([pubkeys["A"]]) == 1
        assert contacts.pubkeys() == [pubkeys["A"]]

    def test_replace_all_failure_keeps_old(self, contacts, pubkeys):
        contacts.bulk_upsert([pubkeys["A"], pubkeys["B"]])
        with pytest.raises(ValidationException):
            contacts.replace_all([pubkeys["C"], "bogus"])
        assert sorted(contacts.pubkeys()) == [pubkeys["A"], pubkeys["B"]]

    def test_clear(self, contacts, mutes, pubkeys):
        contacts.add(pubkeys["A"])
        mutes.add(pubkeys["B"])
        assert contacts.clear() == 1
        assert contacts.count() == 0
        assert mutes.count() == 1


class TestContactTag:
    def test_bare(self):
        assert Contact("a" * 64).to_tag() == ["p", "a" * 64]

    def test_relay_only(self):
        assert Contact("a" * 64, relay_hint="wss://r").to_tag() == ["p", "a" * 64, "wss://r"]

    def test_petname_without_relay(self):
        assert Contact("a" * 64, petname="al").to_tag() == ["p", "a" * 64, "", "al"]

    def test_to_dict(self):
        data = Contact("a" * 64, "wss://r", "al", 5).to_dict()
        assert data == {"pubkey": "a" * 64, "relay_hint": "wss://r", "petname": "al", "added_at": 5}


# ============================================================================
# MuteStore Tests
# ============================================================================


class TestMuteStore:
    def test_add_and_contains(self, mutes, pubkeys):
        mute = mutes.add(pubkeys["Spammer"])
        assert isinstance(mute, Mute)
        assert mutes.contains(pubkeys["Spammer"])
        assert not mutes.contains(pubkeys["A"])

    def test_add_twice_is_one_row(self, mutes, pubkeys):
        mutes.add(pubkeys["Spammer"])
        mutes.add(pubkeys["Spammer"])
        assert mutes.count() == 1

    def test_add_invalid(self, mutes):
        with pytest.raises(ValidationException):
            mutes.add("xyz")

    def test_remove(self, mutes, pubkeys):
        mutes.add(pubkeys["Spammer"])
        assert mutes.remove(pubkeys["Spammer"]) is True
        assert mutes.remove(pubkeys["Spammer"]) is False

    def test_list_most_recent_first(self, mutes, pubkeys):
        mutes.add(pubkeys["A"])
        mutes.add(pubkeys["B"])
        assert [m.pubkey for m in mutes.list()] == [pubkeys["B"], pubkeys["A"]]

    def test_bulk_and_replace(self, mutes, pubkeys):
        assert mutes.bulk_upsert([pubkeys["A"], PubkeyReference(pubkeys["B"])]) == 2
        assert mutes.replace_all([pubkeys["C"]]) == 1
        assert [m.pubkey for m in mutes.list()] == [pubkeys["C"]]

    def test_mute_tag(self, pubkeys):
        assert Mute(pubkeys["A"]).to_tag() == ["p", pubkeys["A"]]


class TestIdempotence:
    def test_add_twice_one_row(self, contacts, pubkeys):
        contacts.add(pubkeys["A"])
        contacts.add(pubkeys["A"])
        assert contacts.count() == 1
