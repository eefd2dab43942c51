"""
Prometheus metrics for relay traffic.

Defines module-level metric objects (singletons, thread-safe) updated by
[RelayConnection][nostrkit.client.connection.RelayConnection] and
[RelayPool][nostrkit.client.pool.RelayPool]. Exposition is left to the
embedding application (e.g. ``prometheus_client.start_http_server``).

Architecture:
    RELAY_CONNECTED:         1 while a relay transport is open, else 0.
    RELAY_MESSAGES_TOTAL:    Inbound frames by relay and frame type
                             (``malformed`` for unparseable frames).
    PUBLISH_RESULTS_TOTAL:   Per-relay publish outcomes.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge


RELAY_CONNECTED = Gauge(
    "nostrkit_relay_connected",
    "Whether the relay transport is currently open (1) or not (0)",
    ["relay"],
)

RELAY_MESSAGES_TOTAL = Counter(
    "nostrkit_relay_messages_total",
    "Inbound relay frames by type",
    ["relay", "type"],
)

PUBLISH_RESULTS_TOTAL = Counter(
    "nostrkit_publish_results_total",
    "Per-relay publish outcomes",
    ["relay", "outcome"],
)
