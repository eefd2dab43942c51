"""Client layer: relay connections, subscriptions and the relay pool.

Depends on ``models``, ``core``, ``nips`` and ``utils``.

Attributes:
    RelayConnection: One relay, its state machine and subscription registry.
        See [RelayConnection][nostrkit.client.connection.RelayConnection].
    RelayPool: Fan-out over many connections.
        See [RelayPool][nostrkit.client.pool.RelayPool].
    fetch_user_relays: NIP-65 relay list lookup.
        See [fetch_user_relays()][nostrkit.client.relays.fetch_user_relays].
"""

from .connection import RelayConnection, RelayConnectionConfig, RelayTimeoutsConfig
from .pool import PoolSubscription, PublishResult, RelayPool, RelayPoolConfig
from .relays import DEFAULT_LOOKUP_RELAY, fetch_user_relays
from .state import ConnectionState, ConnectionStatus, TransportSignal, advance
from .subscription import Subscription, SubscriptionIdAllocator


__all__ = [
    "DEFAULT_LOOKUP_RELAY",
    "ConnectionState",
    "ConnectionStatus",
    "PoolSubscription",
    "PublishResult",
    "RelayConnection",
    "RelayConnectionConfig",
    "RelayPool",
    "RelayPoolConfig",
    "RelayTimeoutsConfig",
    "Subscription",
    "SubscriptionIdAllocator",
    "TransportSignal",
    "advance",
    "fetch_user_relays",
]
