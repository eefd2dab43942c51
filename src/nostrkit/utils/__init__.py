"""Utilities layer: key management, HTTP helpers and WebSocket transport.

Depends on ``nostrkit.models`` and third-party libraries only.

Attributes:
    keys: Key generation and environment-based key loading.
        See [KeysConfig][nostrkit.utils.keys.KeysConfig].
    http: Bounded HTTP response reading.
    transport: [Transport][nostrkit.utils.transport.Transport] interface and
        the aiohttp WebSocket implementation.
"""

from .http import read_bounded_json
from .keys import ENV_PRIVATE_KEY, KeyPair, KeysConfig, generate_key_pair, load_keys_from_env
from .transport import (
    Transport,
    TransportConfig,
    TransportFactory,
    WebSocketTransport,
    open_websocket,
    websocket_factory,
)


__all__ = [
    "ENV_PRIVATE_KEY",
    "KeyPair",
    "KeysConfig",
    "Transport",
    "TransportConfig",
    "TransportFactory",
    "WebSocketTransport",
    "generate_key_pair",
    "load_keys_from_env",
    "open_websocket",
    "read_bounded_json",
    "websocket_factory",
]
