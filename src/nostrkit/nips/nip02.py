"""
NIP-02 contact lists (kind 3).

A contact list is a replaceable event whose ``p`` tags name the followed
public keys, optionally with a relay hint and a petname::

    ["p", <pubkey>, <relay url>, <petname>]
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from nostrkit.models.constants import EventKind
from nostrkit.models.event import Event, EventTemplate


@dataclass(frozen=True, slots=True)
class Contact:
    """One followed public key.

    Attributes:
        pubkey: 64-char hex public key.
        relay: Relay hint, or empty string.
        petname: Local nickname, or empty string.
    """

    pubkey: str
    relay: str = ""
    petname: str = ""


def create_contact_list(contacts: Iterable[Contact], created_at: int | None = None) -> EventTemplate:
    """Build a kind 3 template from *contacts*.

    Trailing empty tag values are omitted, but a petname without a relay
    keeps an empty relay slot so positions stay meaningful.
    """
    tags: list[list[str]] = []
    for contact in contacts:
        tag = ["p", contact.pubkey]
        if contact.relay or contact.petname:
            tag.append(contact.relay)
        if contact.petname:
            tag.append(contact.petname)
        tags.append(tag)

    template = EventTemplate(kind=int(EventKind.CONTACT_LIST), tags=tags)
    if created_at is not None:
        template.created_at = created_at
    return template


def parse_contact_list(event: Event | Any) -> list[Contact]:
    """Extract the contacts of a kind 3 event.

    Returns an empty list for any other kind. Tags without a value are
    skipped.
    """
    if event.kind != EventKind.CONTACT_LIST:
        return []
    return [
        Contact(
            pubkey=tag[1],
            relay=tag[2] if len(tag) > 2 else "",
            petname=tag[3] if len(tag) > 3 else "",
        )
        for tag in event.tags
        if len(tag) > 1 and tag[0] == "p" and tag[1]
    ]
