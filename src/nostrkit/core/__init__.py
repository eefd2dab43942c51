"""Core layer: exceptions, structured logging, YAML loading and metrics.

Depends only on ``nostrkit.models`` and is depended upon by every layer
above it.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrkit.core.logger.Logger].
    NostrKitError: Root of the exception hierarchy.
        See [nostrkit.core.exceptions][].
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][nostrkit.core.yaml.load_yaml].
"""

from .exceptions import (
    ChecksumError,
    ConfigurationError,
    ConnectivityError,
    EventValidationError,
    IdentifierError,
    NostrKitError,
    ProtocolError,
    RelayConnectionError,
    RelayTimeoutError,
    SignerError,
    StateTransitionError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import PUBLISH_RESULTS_TOTAL, RELAY_CONNECTED, RELAY_MESSAGES_TOTAL
from .yaml import load_yaml


__all__ = [
    "PUBLISH_RESULTS_TOTAL",
    "RELAY_CONNECTED",
    "RELAY_MESSAGES_TOTAL",
    "ChecksumError",
    "ConfigurationError",
    "ConnectivityError",
    "EventValidationError",
    "IdentifierError",
    "Logger",
    "NostrKitError",
    "ProtocolError",
    "RelayConnectionError",
    "RelayTimeoutError",
    "SignerError",
    "StateTransitionError",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
]
