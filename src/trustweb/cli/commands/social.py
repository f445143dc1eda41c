# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Follow, mute and list commands."""

from __future__ import annotations

import argparse

from ...core.exceptions import ValidationException
from ...social.contacts import ContactStore
from ...social.lists import contact_list_record, mute_list_record
from ...social.mutes import MuteStore
from ..output import output_json
from ..utils import format_age, get_self_pubkey, open_store, publish_record, resolve_pubkey


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register follow/unfollow/mute/unmute/contacts/mutes on the CLI parser."""
    follow_parser = subparsers.add_parser("follow", help="Follow an author and publish the contact list")
    follow_parser.add_argument("pubkey", help="Author pubkey (64-char hex)")
    follow_parser.add_argument("--relay", help="Relay hint for this contact")
    follow_parser.add_argument("--petname", help="Local name for this contact")
    _add_publish_flag(follow_parser)
    follow_parser.set_defaults(func=cmd_follow)

    unfollow_parser = subparsers.add_parser("unfollow", help="Unfollow an author")
    unfollow_parser.add_argument("pubkey", help="Author pubkey (64-char hex)")
    _add_publish_flag(unfollow_parser)
    unfollow_parser.set_defaults(func=cmd_unfollow)

    mute_parser = subparsers.add_parser("mute", help="Mute an author and publish the mute list")
    mute_parser.add_argument("pubkey", help="Author pubkey (64-char hex)")
    _add_publish_flag(mute_parser)
    mute_parser.set_defaults(func=cmd_mute)

    unmute_parser = subparsers.add_parser("unmute", help="Unmute an author")
    unmute_parser.add_argument("pubkey", help="Author pubkey (64-char hex)")
    _add_publish_flag(unmute_parser)
    unmute_parser.set_defaults(func=cmd_unmute)

    contacts_parser = subparsers.add_parser("contacts", help="List followed authors")
    contacts_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    contacts_parser.set_defaults(func=cmd_contacts)

    mutes_parser = subparsers.add_parser("mutes", help="List muted authors")
    mutes_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    mutes_parser.set_defaults(func=cmd_mutes)


def _add_publish_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-publish",
        dest="publish",
        action="store_false",
        help="Only update the local store",
    )


def cmd_follow(args: argparse.Namespace) -> int:
    """Follow an author (kind 3 contact list)."""
    me = get_self_pubkey(args)
    target = resolve_pubkey(args.pubkey)
    if target == me:
        raise ValidationException("Cannot follow yourself.", field="pubkey", value=target)

    with open_store(args) as store:
        contacts = ContactStore(store)
        contacts.add(target, args.relay, args.petname)
        print(f"Following {target}")

        if args.publish:
            publish_record(args, contact_list_record(contacts, me), "Contact list")
    return 0


def cmd_unfollow(args: argparse.Namespace) -> int:
    """Unfollow an author. Unfollowing a non-contact is a no-op."""
    me = get_self_pubkey(args)
    target = resolve_pubkey(args.pubkey)

    with open_store(args) as store:
        contacts = ContactStore(store)
        if not contacts.remove(target):
            print(f"Not following {target}")
            return 0
        print(f"Unfollowed {target}")

        if args.publish:
            publish_record(args, contact_list_record(contacts, me), "Contact list")
    return 0


def cmd_mute(args: argparse.Namespace) -> int:
    """Mute an author (kind 10000 mute list)."""
    me = get_self_pubkey(args)
    target = resolve_pubkey(args.pubkey)
    if target == me:
        raise ValidationException("Cannot mute yourself.", field="pubkey", value=target)

    with open_store(args) as store:
        mutes = MuteStore(store)
        mutes.add(target)
        print(f"Muted {target}")

        if args.publish:
            publish_record(args, mute_list_record(mutes, me), "Mute list")
    return 0


def cmd_unmute(args: argparse.Namespace) -> int:
    """Unmute an author. Unmuting a non-muted author is a no-op."""
    me = get_self_pubkey(args)
    target = resolve_pubkey(args.pubkey)

    with open_store(args) as store:
        mutes = MuteStore(store)
        if not mutes.remove(target):
            print(f"Not muted: {target}")
            return 0
        print(f"Unmuted {target}")

        if args.publish:
            publish_record(args, mute_list_record(mutes, me), "Mute list")
    return 0


def cmd_contacts(args: argparse.Namespace) -> int:
    """List contacts, most recent first."""
    with open_store(args) as store:
        contacts = ContactStore(store).list()

    if args.json:
        output_json([c.to_dict() for c in contacts])
        return 0

    if not contacts:
        print("No contacts. Use `trustweb follow <pubkey>` to add contacts.")
        print("Or run `trustweb graph sync` to sync from relays.")
        return 0

    print(f"Contacts ({len(contacts)}):\n")
    for contact in contacts:
        petname = f" ({contact.petname})" if contact.petname else ""
        print(f"  {contact.pubkey}{petname}  {format_age(contact.added_at)}")
    return 0


def cmd_mutes(args: argparse.Namespace) -> int:
    """List muted authors, most recent first."""
    with open_store(args) as store:
        mutes = MuteStore(store).list()

    if args.json:
        output_json([m.to_dict() for m in mutes])
        return 0

    if not mutes:
        print("No muted users.")
        return 0

    print(f"Muted ({len(mutes)}):\n")
    for mute in mutes:
        print(f"  {mute.pubkey}  {format_age(mute.added_at)}")
    return 0
