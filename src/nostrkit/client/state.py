"""
Relay connection state machine.

A connection's status is a value, [ConnectionStatus][nostrkit.client.state.ConnectionStatus],
advanced only by the pure function [advance()][nostrkit.client.state.advance]
in response to a [TransportSignal][nostrkit.client.state.TransportSignal].
Keeping the transition table in one place means a connection can never be
observed in a state the table does not allow.

```text
                 CONNECT               OPENED
  DISCONNECTED ----------> CONNECTING --------> CONNECTED
       ^   ^                   |                    |
       |   |                   | FAILED             | FAILED
       |   |    CONNECT        v                    |
       |   +-------------- ERROR <------------------+
       |                                            |
       +----------------- CLOSED (from any) --------+
```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from nostrkit.core.exceptions import StateTransitionError


class ConnectionState(StrEnum):
    """Lifecycle state of a relay connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TransportSignal(StrEnum):
    """Events that drive connection state transitions.

    Attributes:
        CONNECT: A connection attempt starts.
        OPENED: The transport handshake succeeded.
        FAILED: The handshake failed or an open transport broke.
        CLOSED: The connection was closed (locally or by the relay).
    """

    CONNECT = "connect"
    OPENED = "opened"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    """Current state plus the reason for the last failure, if any."""

    state: ConnectionState = ConnectionState.DISCONNECTED
    reason: str | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED


DISCONNECTED: Final[ConnectionStatus] = ConnectionStatus()

_TRANSITIONS: Final[dict[tuple[ConnectionState, TransportSignal], ConnectionState]] = {
    (ConnectionState.DISCONNECTED, TransportSignal.CONNECT): ConnectionState.CONNECTING,
    (ConnectionState.ERROR, TransportSignal.CONNECT): ConnectionState.CONNECTING,
    (ConnectionState.CONNECTING, TransportSignal.OPENED): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTING, TransportSignal.FAILED): ConnectionState.ERROR,
    (ConnectionState.CONNECTED, TransportSignal.FAILED): ConnectionState.ERROR,
    **{(state, TransportSignal.CLOSED): ConnectionState.DISCONNECTED for state in ConnectionState},
}


def advance(
    status: ConnectionStatus, signal: TransportSignal, reason: str | None = None
) -> ConnectionStatus:
    """Return the status that follows *status* on *signal*.

    Args:
        status: Current status.
        signal: Transport event.
        reason: Failure description, kept only when the result is ``ERROR``.

    Raises:
        StateTransitionError: If *signal* is not allowed in ``status.state``.
    """
    target = _TRANSITIONS.get((status.state, signal))
    if target is None:
        raise StateTransitionError(f"cannot apply {signal.value!r} in state {status.state.value!r}")
    return ConnectionStatus(target, reason if target is ConnectionState.ERROR else None)
