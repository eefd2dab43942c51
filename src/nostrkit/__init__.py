r"""nostrkit -- Async Nostr client protocol engine.

Builds, signs and verifies Nostr events, encodes NIP-19 identifiers, and
talks to relays over WebSockets, one at a time or as a pool.

Imports flow strictly downward:

```text
                client          Relay connections, subscriptions, pool
             /    |    \
          core  nips  utils     Errors/logging, protocol codecs, transport
             \    |    /
                models          Frozen dataclasses and wire messages (zero I/O)
```

Attributes:
    models: Events, relay URLs and relay messages. Zero I/O.
    core: Exceptions, structured logging, YAML loading, metrics.
    nips: NIP-01 event codec, NIP-19 identifiers, signers, tag helpers.
    utils: Key management, bounded HTTP reads, WebSocket transport.
    client: RelayConnection, RelayPool and relay-list lookup.

Note:
    For lightweight usage, import directly from subpackages::

        from nostrkit.nips import finalize_event, verify_event
        from nostrkit.client import RelayPool

    Top-level imports (``from nostrkit import RelayPool``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrkit")

__all__ = [
    "Event",
    "EventTemplate",
    "Logger",
    "NostrKitError",
    "PublishResult",
    "RelayConnection",
    "RelayConnectionConfig",
    "RelayPool",
    "RelayPoolConfig",
    "RelayUrl",
    "Signer",
    "finalize_event",
    "verify_event",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Event": ("nostrkit.models", "Event"),
    "EventTemplate": ("nostrkit.models", "EventTemplate"),
    "RelayUrl": ("nostrkit.models", "RelayUrl"),
    "Logger": ("nostrkit.core", "Logger"),
    "NostrKitError": ("nostrkit.core", "NostrKitError"),
    "Signer": ("nostrkit.nips", "Signer"),
    "finalize_event": ("nostrkit.nips", "finalize_event"),
    "verify_event": ("nostrkit.nips", "verify_event"),
    "PublishResult": ("nostrkit.client", "PublishResult"),
    "RelayConnection": ("nostrkit.client", "RelayConnection"),
    "RelayConnectionConfig": ("nostrkit.client", "RelayConnectionConfig"),
    "RelayPool": ("nostrkit.client", "RelayPool"),
    "RelayPoolConfig": ("nostrkit.client", "RelayPoolConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrkit' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
