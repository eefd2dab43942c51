"""
Nostr event templates and immutable signed events.

An [EventTemplate][nostrkit.models.event.EventTemplate] is the mutable,
unsigned draft a caller builds; an [Event][nostrkit.models.event.Event] is
the frozen record produced by
[finalize_event()][nostrkit.nips.nip01.finalize_event] once the template has
been hashed and signed.

Construction of an ``Event`` only checks its shape (types, hex lengths, kind
range). Whether the ``id`` matches the content and the ``sig`` matches the
``id`` is a cryptographic question answered by
[verify_event()][nostrkit.nips.nip01.verify_event].

See Also:
    [nostrkit.nips.nip01][]: Serialization, hashing, signing and verification.
    [nostrkit.models.messages][]: Wire frames that carry events.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ._validation import (
    freeze_tags,
    validate_hex,
    validate_instance,
    validate_int,
    validate_str,
    validate_timestamp,
)
from .constants import EVENT_KIND_MAX


Tags = tuple[tuple[str, ...], ...]


@dataclass(slots=True)
class EventTemplate:
    """Unsigned event draft.

    Mutable: callers may append tags or edit content until the
    template is passed to a signer.

    Attributes:
        kind: Event kind in ``0..65535``.
        content: Event content, semantics depend on ``kind``.
        tags: List of tags, each a list of strings with the tag name first.
        created_at: Unix timestamp in seconds; defaults to now.

    Examples:
        ```python
        template = EventTemplate(kind=1, content="hello")
        template.tags.append(["t", "nostr"])
        ```
    """

    kind: int
    content: str = ""
    tags: list[list[str]] = field(default_factory=list)
    created_at: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        """Return the template as a JSON-compatible dictionary."""
        return {
            "kind": self.kind,
            "content": self.content,
            "tags": [list(tag) for tag in self.tags],
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable, signed Nostr event.

    Tags are stored as a tuple of tuples so that the whole record is deeply
    immutable and hashable; [to_dict()][nostrkit.models.event.Event.to_dict]
    renders them back as lists for the wire.

    Attributes:
        id: 64 lowercase hex chars, SHA-256 of the canonical serialization.
        pubkey: 64 lowercase hex chars, x-only secp256k1 public key.
        created_at: Unix timestamp in seconds.
        kind: Event kind in ``0..65535``.
        tags: Tuple of tags, each a tuple of strings.
        content: Event content.
        sig: 128 lowercase hex chars, BIP-340 Schnorr signature over ``id``.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a hex field has the wrong length or alphabet, or
            ``kind`` / ``created_at`` are out of range.
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tags
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_hex(self.id, 64, "id")
        validate_hex(self.pubkey, 64, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        validate_int(self.kind, "kind", maximum=EVENT_KIND_MAX)
        validate_str(self.content, "content")
        validate_hex(self.sig, 128, "sig")
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def get_tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag named *name*, in tag order."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name]

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Build an Event from a decoded NIP-01 JSON object.

        Only the structure is checked; call
        [verify_event()][nostrkit.nips.nip01.verify_event] before trusting
        the result.

        Args:
            data: Mapping with all seven event fields.

        Returns:
            A new frozen Event.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a field is missing or out of range.
        """
        validate_instance(data, Mapping, "event")
        try:
            tags = data["tags"]
            if not isinstance(tags, Sequence):
                raise TypeError(f"tags must be a sequence, got {type(tags).__name__}")
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=tags,  # type: ignore[arg-type]  # frozen in __post_init__
                content=data["content"],
                sig=data["sig"],
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None
