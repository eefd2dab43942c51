"""
NIP-10 reply threading.

Replies reference other events with ``e`` tags and their authors with
``p`` tags. Current clients mark ``e`` tags explicitly::

    ["e", <event id>, <relay url>, "root" | "reply" | "mention"]

Older clients used position instead of markers: the last unmarked ``e``
tag was the event being replied to and the one before it was the thread
root. [parse_thread()][nostrkit.nips.nip10.parse_thread] honors explicit
markers first and falls back to position for unmarked tags.

Warning:
    The positional fallback is best-effort. When marked and unmarked ``e``
    tags are mixed in one event, the result depends on tag order and may not
    match what the author intended.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class EventReference:
    """An ``e`` tag: referenced event id with optional relay hint and marker."""

    id: str
    relay: str = ""
    marker: str = ""


@dataclass(frozen=True, slots=True)
class ProfileReference:
    """A ``p`` tag: referenced public key with optional relay hint."""

    pubkey: str
    relay: str = ""


@dataclass(frozen=True, slots=True)
class Thread:
    """Thread position of an event.

    Attributes:
        root: The thread root, or ``None`` for a top-level event.
        reply: The direct parent, or ``None`` for a top-level event.
        mentions: Events referenced without being root or parent. Unmarked
            references are always included here, even when one of them was
            also chosen as root or parent.
        profiles: Referenced public keys.
    """

    root: EventReference | None = None
    reply: EventReference | None = None
    mentions: tuple[EventReference, ...] = ()
    profiles: tuple[ProfileReference, ...] = ()


def parse_thread(event: Any) -> Thread:
    """Determine the root, parent and mentions of *event*.

    Tags are visited from last to first. Explicit ``root``/``reply``/
    ``mention`` markers win. Among unmarked ``e`` tags, the first visited
    (the last in the list) is the parent candidate and the second visited is
    the root candidate. A missing root falls back to the parent candidate
    and then to the explicit reply; a missing reply falls back to the parent
    candidate and then to the root.
    """
    root: EventReference | None = None
    reply: EventReference | None = None
    maybe_root: EventReference | None = None
    maybe_reply: EventReference | None = None
    mentions: list[EventReference] = []
    profiles: list[ProfileReference] = []

    for tag in reversed(event.tags):
        if len(tag) < 2 or not tag[1]:
            continue

        if tag[0] == "e":
            ref = EventReference(
                id=tag[1],
                relay=tag[2] if len(tag) > 2 else "",
                marker=tag[3] if len(tag) > 3 else "",
            )
            if ref.marker == "root":
                root = ref
            elif ref.marker == "reply":
                reply = ref
            elif ref.marker == "mention":
                mentions.append(ref)
            else:
                if maybe_reply is None:
                    maybe_reply = ref
                elif maybe_root is None:
                    maybe_root = ref
                mentions.append(ref)

        elif tag[0] == "p":
            profiles.append(ProfileReference(pubkey=tag[1], relay=tag[2] if len(tag) > 2 else ""))

    if root is None:
        root = maybe_root or maybe_reply or reply
    if reply is None:
        reply = maybe_reply or root

    return Thread(root=root, reply=reply, mentions=tuple(mentions), profiles=tuple(profiles))


def create_reply_tags(event: Any, root_event_id: str | None = None, relay: str = "") -> list[list[str]]:
    """Build marked tags for a reply to *event*.

    Args:
        event: The event being replied to.
        root_event_id: Root of the existing thread; ``None`` makes *event*
            the root.
        relay: Relay hint added to every tag.
    """
    return [
        ["p", event.pubkey, relay],
        ["e", root_event_id or event.id, relay, "root"],
        ["e", event.id, relay, "reply"],
    ]


def mentioned_pubkeys(event: Any) -> list[str]:
    """Public keys of every ``p`` tag, in tag order."""
    return [tag[1] for tag in event.tags if len(tag) > 1 and tag[0] == "p" and tag[1]]


def mentioned_events(event: Any) -> list[str]:
    """Event ids of every ``e`` tag, in tag order."""
    return [tag[1] for tag in event.tags if len(tag) > 1 and tag[0] == "e" and tag[1]]


def is_reply(event: Any) -> bool:
    return parse_thread(event).reply is not None


def root_event_id(event: Any) -> str | None:
    thread = parse_thread(event)
    return thread.root.id if thread.root else None


def reply_event_id(event: Any) -> str | None:
    thread = parse_thread(event)
    return thread.reply.id if thread.reply else None


@dataclass(slots=True)
class ThreadNode:
    """An event and its direct replies within a thread tree."""

    event: Any
    children: list[ThreadNode] = field(default_factory=list)


def build_thread_tree(events: Iterable[Any]) -> tuple[list[ThreadNode], dict[str, ThreadNode]]:
    """Arrange events into reply trees.

    Events whose parent is not among *events* become roots. Input order is
    preserved among siblings and among roots.

    Returns:
        ``(roots, nodes_by_id)``.
    """
    events = list(events)
    nodes = {event.id: ThreadNode(event) for event in events}
    roots: list[ThreadNode] = []

    for event in events:
        parent_id = reply_event_id(event)
        node = nodes[event.id]
        if parent_id is None or parent_id not in nodes or parent_id == event.id:
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    return roots, nodes
