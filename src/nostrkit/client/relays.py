"""Look up a user's published relay list (NIP-65)."""

from __future__ import annotations

import logging
from typing import Final

from nostrkit.models.constants import EventKind
from nostrkit.nips.nip01 import sort_by_recency
from nostrkit.nips.nip65 import RelayListEntry, default_relays, parse_relay_list
from nostrkit.utils.transport import TransportFactory

from .connection import RelayConnection, RelayConnectionConfig


logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_RELAY: Final[str] = "wss://purplepag.es"


async def fetch_user_relays(
    pubkey: str,
    *,
    lookup_relay: str = DEFAULT_LOOKUP_RELAY,
    timeout: float = 5.0,  # noqa: ASYNC109
    config: RelayConnectionConfig | None = None,
    transport_factory: TransportFactory | None = None,
) -> list[RelayListEntry]:
    """Fetch the newest kind 10002 relay list published by *pubkey*.

    Args:
        pubkey: Author public key (hex).
        lookup_relay: Relay to query; an aggregator of relay lists by default.
        timeout: Seconds to wait for end-of-stored-events.
        config: Connection settings for the lookup relay.
        transport_factory: Transport override, mainly for tests.

    Returns:
        The author's relay entries, or
        [default_relays()][nostrkit.nips.nip65.default_relays] when no relay
        list was found.

    Raises:
        ConnectivityError: If the lookup relay cannot be reached.
    """
    relay = RelayConnection(lookup_relay, config, transport_factory=transport_factory)
    try:
        events = await relay.fetch(
            [{"kinds": [int(EventKind.RELAY_LIST)], "authors": [pubkey], "limit": 1}],
            timeout=timeout,
        )
    finally:
        await relay.close()

    if not events:
        logger.debug("relay_list_not_found pubkey=%s relay=%s", pubkey, relay.url)
        return default_relays()

    newest = sort_by_recency(events)[0]
    logger.debug("relay_list_found pubkey=%s event_id=%s", pubkey, newest.id)
    return parse_relay_list(newest)
