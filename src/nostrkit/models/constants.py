"""Shared constants for the models layer.

Defines enumerations and limits used across multiple model modules and by
the upper layers. Placing them here keeps the models layer free of
circular imports.

See Also:
    [nostrkit.models.relay][]: Uses [NetworkType][nostrkit.models.constants.NetworkType]
        to classify relay URLs during canonicalization.
    [nostrkit.models.messages][]: Uses [FrameType][nostrkit.models.constants.FrameType]
        to tag wire frames.
    [nostrkit.nips][]: Uses [EventKind][nostrkit.models.constants.EventKind] for
        event templates and tag parsers.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


EVENT_KIND_MAX = 65_535
"""Largest event kind accepted by the event codec (16-bit unsigned range)."""


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type during
    [RelayUrl][nostrkit.models.relay.RelayUrl] construction. The client uses
    it to decide whether a connection needs a SOCKS proxy.

    Attributes:
        CLEARNET: Public internet host.
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Loopback, private or reserved address (e.g. a relay under test).
        UNKNOWN: Hostname that could not be classified.

    Examples:
        ```python
        RelayUrl("wss://relay.damus.io").network  # NetworkType.CLEARNET
        RelayUrl("ws://abc123.onion").network     # NetworkType.TOR
        RelayUrl("ws://localhost:7777").network   # NetworkType.LOCAL
        ```
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"

    @property
    def is_overlay(self) -> bool:
        """True for networks reached through a SOCKS proxy."""
        return self in (NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI)


class EventKind(IntEnum):
    """Event kinds produced or parsed by this library.

    Only the kinds with dedicated templates or parsers are listed; any
    integer in ``0..EVENT_KIND_MAX`` is a valid kind on the wire.

    Attributes:
        SET_METADATA: Kind 0, profile metadata as a JSON object (NIP-01).
        TEXT_NOTE: Kind 1, short text note (NIP-01).
        CONTACT_LIST: Kind 3, followed public keys (NIP-02).
        ZAP_REQUEST: Kind 9734, lightning zap request (NIP-57).
        ZAP_RECEIPT: Kind 9735, lightning zap receipt (NIP-57).
        RELAY_LIST: Kind 10002, read/write relay preferences (NIP-65).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    CONTACT_LIST = 3
    ZAP_REQUEST = 9734
    ZAP_RECEIPT = 9735
    RELAY_LIST = 10002


class FrameType(StrEnum):
    """Tags at index 0 of client/relay wire frames.

    Attributes:
        REQ: Client subscription request.
        CLOSE: Client subscription cancellation.
        EVENT: Client publish or relay event delivery.
        EOSE: Relay end-of-stored-events marker.
        OK: Relay acknowledgment of a published event.
        NOTICE: Human-readable relay message.
    """

    REQ = "REQ"
    CLOSE = "CLOSE"
    EVENT = "EVENT"
    EOSE = "EOSE"
    OK = "OK"
    NOTICE = "NOTICE"
