"""Models layer: pure frozen dataclasses with zero I/O.

Sits at the bottom of the dependency graph and depends only on the standard
library and ``rfc3986``. Raises only ``TypeError`` and ``ValueError``; the
upper layers translate these into
[NostrKitError][nostrkit.core.exceptions.NostrKitError] subclasses.

Attributes:
    Event: Immutable signed event. See [Event][nostrkit.models.event.Event].
    EventTemplate: Mutable unsigned event draft.
    RelayUrl: Canonical relay URL with network detection.
        See [RelayUrl][nostrkit.models.relay.RelayUrl].
    EventMessage, EoseMessage, OkMessage, NoticeMessage, UnknownMessage:
        Typed relay-to-client wire frames.
"""

from .constants import EVENT_KIND_MAX, EventKind, FrameType, NetworkType
from .event import Event, EventTemplate, Tags
from .messages import (
    EoseMessage,
    EventMessage,
    NoticeMessage,
    OkMessage,
    RelayMessage,
    UnknownMessage,
    encode_close,
    encode_event,
    encode_req,
    parse_relay_message,
)
from .relay import RelayUrl, normalize_relay_url


__all__ = [
    "EVENT_KIND_MAX",
    "EoseMessage",
    "Event",
    "EventKind",
    "EventMessage",
    "EventTemplate",
    "FrameType",
    "NetworkType",
    "NoticeMessage",
    "OkMessage",
    "RelayMessage",
    "RelayUrl",
    "Tags",
    "UnknownMessage",
    "encode_close",
    "encode_event",
    "encode_req",
    "normalize_relay_url",
    "parse_relay_message",
]
