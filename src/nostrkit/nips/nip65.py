"""
NIP-65 relay list metadata (kind 10002).

Each ``r`` tag names a relay the author reads from, writes to, or both::

    ["r", "wss://relay.example.com"]           # read and write
    ["r", "wss://relay.example.com", "read"]   # read only
    ["r", "wss://relay.example.com", "write"]  # write only

See Also:
    [fetch_user_relays()][nostrkit.client.relays.fetch_user_relays]: Looks
        up a user's relay list on a lookup relay.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Final

from nostrkit.models.constants import EventKind
from nostrkit.models.event import Event, EventTemplate


DEFAULT_RELAYS: Final[tuple[str, ...]] = (
    "wss://relay.damus.io",
    "wss://nos.lol",
    "wss://relay.primal.net",
    "wss://relay.nostr.band",
)


@dataclass(frozen=True, slots=True)
class RelayListEntry:
    """One entry of a relay list.

    Attributes:
        url: Relay URL as published (not canonicalized).
        read: The author reads from this relay.
        write: The author writes to this relay.
    """

    url: str
    read: bool = True
    write: bool = True


def default_relays() -> list[RelayListEntry]:
    """Relays to use when a user has not published a relay list."""
    return [RelayListEntry(url) for url in DEFAULT_RELAYS]


def create_relay_list(entries: Iterable[RelayListEntry], created_at: int | None = None) -> EventTemplate:
    """Build a kind 10002 template.

    Entries that are neither read nor write are published without a marker,
    which readers interpret as both.
    """
    tags: list[list[str]] = []
    for entry in entries:
        tag = ["r", entry.url]
        if entry.read and not entry.write:
            tag.append("read")
        elif entry.write and not entry.read:
            tag.append("write")
        tags.append(tag)

    template = EventTemplate(kind=int(EventKind.RELAY_LIST), tags=tags)
    if created_at is not None:
        template.created_at = created_at
    return template


def parse_relay_list(event: Event | Any) -> list[RelayListEntry]:
    """Extract the relay entries of a kind 10002 event.

    A missing or empty marker means read and write; an unrecognized marker
    means neither. Returns an empty list for any other kind.
    """
    if event.kind != EventKind.RELAY_LIST:
        return []

    entries = []
    for tag in event.tags:
        if len(tag) < 2 or tag[0] != "r" or not tag[1]:
            continue
        marker = tag[2] if len(tag) > 2 else ""
        entries.append(
            RelayListEntry(
                url=tag[1],
                read=not marker or marker == "read",
                write=not marker or marker == "write",
            )
        )
    return entries


def read_relays(entries: Iterable[RelayListEntry]) -> list[str]:
    """URLs of the entries marked for reading."""
    return [entry.url for entry in entries if entry.read]


def write_relays(entries: Iterable[RelayListEntry]) -> list[str]:
    """URLs of the entries marked for writing."""
    return [entry.url for entry in entries if entry.write]
