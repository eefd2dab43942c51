"""
NIP-01 event codec: validation, canonical serialization, hashing, signing
and verification.

The canonical serialization of an event is the compact JSON array::

    [0, <pubkey>, <created_at>, <kind>, <tags>, <content>]

encoded as UTF-8 with no whitespace and non-ASCII characters left as-is.
Its SHA-256 digest, rendered as lowercase hex, is the event ``id``; the
``sig`` is a BIP-340 Schnorr signature over the 32 raw ``id`` bytes.

Key derivation and Schnorr operations are delegated to ``nostr_sdk``.

Error policy:

* malformed input to [serialize_event()][nostrkit.nips.nip01.serialize_event]
  and [finalize_event()][nostrkit.nips.nip01.finalize_event] raises
  [EventValidationError][nostrkit.core.exceptions.EventValidationError]
  before anything is hashed or signed;
* [validate_event()][nostrkit.nips.nip01.validate_event] and
  [verify_event()][nostrkit.nips.nip01.verify_event] never raise and return
  ``False`` instead, so they are safe on untrusted network input.

Examples:
    ```python
    template = create_text_note("hello nostr")
    event = finalize_event(template, "nsec1...")
    assert verify_event(event)
    ```
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from nostr_sdk import Event as NostrEvent
from nostr_sdk import Keys

from nostrkit.core.exceptions import EventValidationError
from nostrkit.models._validation import is_lower_hex, is_tag_list
from nostrkit.models.constants import EVENT_KIND_MAX, EventKind
from nostrkit.models.event import Event, EventTemplate


logger = logging.getLogger(__name__)

EventLike = Event | Mapping[str, Any]
_E = TypeVar("_E", Event, Mapping[str, Any])


def _fields(event: Any) -> Mapping[str, Any] | None:
    if isinstance(event, Event):
        return event.to_dict()
    if isinstance(event, EventTemplate):
        return event.to_dict()
    if isinstance(event, Mapping):
        return event
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Validation and serialization
# ---------------------------------------------------------------------------


def validate_event(event: Any) -> bool:
    """Check the structure of an event or template-with-pubkey.

    Checks that ``kind`` is an integer in ``0..65535``, ``content`` is a
    string, ``created_at`` is a non-negative integer, ``pubkey`` is exactly
    64 lowercase hex characters and ``tags`` is a sequence of sequences of
    strings. ``id`` and ``sig`` are not inspected.

    Args:
        event: An [Event][nostrkit.models.event.Event] or a mapping.

    Returns:
        True if the structure is valid. Never raises.
    """
    fields = _fields(event)
    if fields is None:
        return False
    kind = fields.get("kind")
    created_at = fields.get("created_at")
    return (
        _is_int(kind)
        and 0 <= kind <= EVENT_KIND_MAX
        and isinstance(fields.get("content"), str)
        and _is_int(created_at)
        and created_at >= 0
        and is_lower_hex(fields.get("pubkey"), 64)
        and is_tag_list(fields.get("tags"))
    )


def serialize_event(event: EventLike) -> str:
    """Return the canonical serialization used as the hash pre-image.

    Raises:
        EventValidationError: If [validate_event()][nostrkit.nips.nip01.validate_event]
            rejects the input.
    """
    if not validate_event(event):
        raise EventValidationError("cannot serialize an invalid event")
    fields = _fields(event)
    assert fields is not None  # noqa: S101  # checked by validate_event
    return json.dumps(
        [
            0,
            fields["pubkey"],
            fields["created_at"],
            fields["kind"],
            [list(tag) for tag in fields["tags"]],
            fields["content"],
        ],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_event_id(event: EventLike) -> str:
    """Return the lowercase hex SHA-256 of the canonical serialization.

    Raises:
        EventValidationError: If the event structure is invalid.
    """
    return hashlib.sha256(serialize_event(event).encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def _load_keys(secret_key: str | bytes | Keys) -> Keys:
    if isinstance(secret_key, Keys):
        return secret_key
    if isinstance(secret_key, (bytes, bytearray)):
        if len(secret_key) != 32:
            raise EventValidationError("secret key must be 32 bytes")
        secret_key = bytes(secret_key).hex()
    if not isinstance(secret_key, str) or not secret_key:
        raise EventValidationError("secret key must be a hex or nsec string, 32 bytes, or Keys")
    try:
        return Keys.parse(secret_key)
    except Exception as e:  # noqa: BLE001  # nostr_sdk raises NostrSdkError subclasses
        raise EventValidationError(f"invalid secret key: {type(e).__name__}") from None


def get_public_key(secret_key: str | bytes | Keys) -> str:
    """Derive the x-only public key (64 hex chars) from a secret key.

    Raises:
        EventValidationError: If the secret key is malformed.
    """
    return _load_keys(secret_key).public_key().to_hex()


def finalize_event(template: EventTemplate | Mapping[str, Any], secret_key: str | bytes | Keys) -> Event:
    """Hash and sign a template, producing an immutable Event.

    Args:
        template: [EventTemplate][nostrkit.models.event.EventTemplate] or a
            mapping with ``kind``, ``content``, ``tags`` and optionally
            ``created_at`` (defaults to now).
        secret_key: Hex or ``nsec`` string, 32 raw bytes, or ``nostr_sdk.Keys``.

    Returns:
        The signed [Event][nostrkit.models.event.Event].

    Raises:
        EventValidationError: If the template or key is malformed.

    Note:
        BIP-340 signing uses fresh auxiliary randomness, so two calls with
        the same template produce the same ``id`` but different ``sig``.
    """
    fields = _fields(template)
    if fields is None:
        raise EventValidationError(
            f"template must be an EventTemplate or mapping, got {type(template).__name__}"
        )

    keys = _load_keys(secret_key)
    created_at = fields.get("created_at")
    unsigned = {
        "pubkey": keys.public_key().to_hex(),
        "created_at": int(time.time()) if created_at is None else created_at,
        "kind": fields.get("kind"),
        "tags": fields.get("tags", []),
        "content": fields.get("content", ""),
    }
    if not validate_event(unsigned):
        raise EventValidationError("cannot finalize an invalid event template")

    event_id = compute_event_id(unsigned)
    sig = keys.sign_schnorr(bytes.fromhex(event_id))

    return Event(
        id=event_id,
        pubkey=unsigned["pubkey"],
        created_at=unsigned["created_at"],
        kind=unsigned["kind"],
        tags=unsigned["tags"],
        content=unsigned["content"],
        sig=sig,
    )


# ---------------------------------------------------------------------------
# Verification and ordering
# ---------------------------------------------------------------------------


def verify_event(event: Any) -> bool:
    """Check that an event's id matches its content and its signature is valid.

    Returns ``False`` (never raises) when the structure is invalid, when the
    recomputed id differs from ``id``, or when the Schnorr signature over
    ``id`` does not verify under ``pubkey``.
    """
    fields = _fields(event)
    if fields is None or not validate_event(fields):
        return False
    if not is_lower_hex(fields.get("id"), 64) or not is_lower_hex(fields.get("sig"), 128):
        return False
    if compute_event_id(fields) != fields["id"]:
        return False

    payload = {
        "id": fields["id"],
        "pubkey": fields["pubkey"],
        "created_at": fields["created_at"],
        "kind": fields["kind"],
        "tags": [list(tag) for tag in fields["tags"]],
        "content": fields["content"],
        "sig": fields["sig"],
    }
    try:
        return bool(NostrEvent.from_json(json.dumps(payload, ensure_ascii=False)).verify())
    except Exception as e:  # noqa: BLE001  # nostr_sdk FFI raises arbitrary types
        logger.debug("signature_check_failed id=%s error=%s", fields["id"], e)
        return False


def _sort_key(event: Any) -> tuple[int, str]:
    if isinstance(event, Event):
        return -event.created_at, event.id
    return -event["created_at"], event["id"]


def sort_by_recency(events: Iterable[_E]) -> list[_E]:
    """Return events newest first, ties broken by ascending ``id``.

    The result is a total order, so the same set of events always yields the
    same feed regardless of arrival order.
    """
    return sorted(events, key=_sort_key)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def create_text_note(
    content: str,
    tags: Sequence[Sequence[str]] = (),
    created_at: int | None = None,
) -> EventTemplate:
    """Build a kind 1 text note template."""
    template = EventTemplate(kind=int(EventKind.TEXT_NOTE), content=content, tags=[list(t) for t in tags])
    if created_at is not None:
        template.created_at = created_at
    return template


def create_profile_metadata(metadata: Mapping[str, Any], created_at: int | None = None) -> EventTemplate:
    """Build a kind 0 profile metadata template.

    Keys whose value is ``None`` are omitted from the JSON content.

    Args:
        metadata: Profile fields such as ``name``, ``about``, ``picture``,
            ``nip05``, ``lud16``.
        created_at: Optional timestamp override.
    """
    content = json.dumps({k: v for k, v in metadata.items() if v is not None}, ensure_ascii=False)
    template = EventTemplate(kind=int(EventKind.SET_METADATA), content=content)
    if created_at is not None:
        template.created_at = created_at
    return template
