"""
Client/relay wire frames.

Every message on a relay connection is a single JSON array whose first
element is a [FrameType][nostrkit.models.constants.FrameType] tag. This
module encodes the client-to-relay frames (``REQ``, ``CLOSE``, ``EVENT``)
and decodes relay-to-client frames into typed, frozen records. Tags that are
not understood are returned as [UnknownMessage][nostrkit.models.messages.UnknownMessage]
so that the caller can log them without failing.

Examples:
    ```python
    encode_req("sub1", [{"kinds": [1], "limit": 10}])
    # '["REQ","sub1",{"kinds":[1],"limit":10}]'

    parse_relay_message('["EOSE","sub1"]')
    # EoseMessage(subscription_id='sub1')
    ```
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .constants import FrameType
from .event import Event


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Relay -> client frames
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EventMessage:
    """``["EVENT", <subscription_id>, <event>]``: an event matching a subscription."""

    subscription_id: str
    event: Event


@dataclass(frozen=True, slots=True)
class EoseMessage:
    """``["EOSE", <subscription_id>]``: stored events have all been sent."""

    subscription_id: str


@dataclass(frozen=True, slots=True)
class OkMessage:
    """``["OK", <event_id>, <accepted>, <message>]``: publish acknowledgment.

    Attributes:
        event_id: Id of the published event.
        accepted: Whether the relay stored the event.
        message: Machine-prefixed reason, e.g. ``"duplicate: already have it"``.
    """

    event_id: str
    accepted: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class NoticeMessage:
    """``["NOTICE", <message>]``: human-readable relay message."""

    message: str


@dataclass(frozen=True, slots=True)
class UnknownMessage:
    """Any well-formed frame whose tag is not handled by the client."""

    frame_type: str
    payload: tuple[Any, ...]


RelayMessage = EventMessage | EoseMessage | OkMessage | NoticeMessage | UnknownMessage


def parse_relay_message(raw: str | bytes) -> RelayMessage:
    """Decode one relay-to-client frame.

    Args:
        raw: The JSON text received on the transport.

    Returns:
        The typed frame.

    Raises:
        ValueError: If *raw* is not JSON, is not a non-empty array with a
            string tag, or a known frame has the wrong shape. Event payloads
            are checked structurally by
            [Event.from_dict()][nostrkit.models.event.Event.from_dict].
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"frame is not valid JSON: {e}") from None

    if not isinstance(data, list) or not data or not isinstance(data[0], str):
        raise ValueError("frame must be a non-empty array with a string tag")

    tag, payload = data[0], data[1:]

    if tag == FrameType.EVENT:
        if len(payload) < 2 or not isinstance(payload[0], str) or not isinstance(payload[1], Mapping):
            raise ValueError("EVENT frame must be [EVENT, subscription_id, event]")
        try:
            event = Event.from_dict(payload[1])
        except TypeError as e:
            raise ValueError(f"EVENT frame carries a malformed event: {e}") from None
        return EventMessage(subscription_id=payload[0], event=event)

    if tag == FrameType.EOSE:
        if not payload or not isinstance(payload[0], str):
            raise ValueError("EOSE frame must be [EOSE, subscription_id]")
        return EoseMessage(subscription_id=payload[0])

    if tag == FrameType.OK:
        if len(payload) < 2 or not isinstance(payload[0], str) or not isinstance(payload[1], bool):
            raise ValueError("OK frame must be [OK, event_id, accepted, message]")
        message = payload[2] if len(payload) > 2 and isinstance(payload[2], str) else ""
        return OkMessage(event_id=payload[0], accepted=payload[1], message=message)

    if tag == FrameType.NOTICE:
        if not payload or not isinstance(payload[0], str):
            raise ValueError("NOTICE frame must be [NOTICE, message]")
        return NoticeMessage(message=payload[0])

    return UnknownMessage(frame_type=tag, payload=tuple(payload))


# ---------------------------------------------------------------------------
# Client -> relay frames
# ---------------------------------------------------------------------------


def encode_req(subscription_id: str, filters: Iterable[Mapping[str, Any]]) -> str:
    """Encode ``["REQ", <subscription_id>, <filter>, ...]``."""
    return _dumps([FrameType.REQ.value, subscription_id, *(dict(f) for f in filters)])


def encode_close(subscription_id: str) -> str:
    """Encode ``["CLOSE", <subscription_id>]``."""
    return _dumps([FrameType.CLOSE.value, subscription_id])


def encode_event(event: Event) -> str:
    """Encode ``["EVENT", <event>]``."""
    return _dumps([FrameType.EVENT.value, event.to_dict()])
