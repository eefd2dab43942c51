"""
Unit tests for client.state module.

Tests:
- advance() - every allowed transition
- advance() - rejected transitions raise StateTransitionError
- ConnectionStatus - reason retention and is_connected
"""

import pytest

from nostrkit.core.exceptions import StateTransitionError
from nostrkit.client.state import (
    DISCONNECTED,
    ConnectionState,
    ConnectionStatus,
    TransportSignal,
    advance,
)


S = ConnectionState
T = TransportSignal


class TestAdvanceAllowed:
    """Transitions permitted by the state table."""

    @pytest.mark.parametrize(
        ("state", "signal", "target"),
        [
            (S.DISCONNECTED, T.CONNECT, S.CONNECTING),
            (S.ERROR, T.CONNECT, S.CONNECTING),
            (S.CONNECTING, T.OPENED, S.CONNECTED),
            (S.CONNECTING, T.FAILED, S.ERROR),
            (S.CONNECTED, T.FAILED, S.ERROR),
            (S.DISCONNECTED, T.CLOSED, S.DISCONNECTED),
            (S.CONNECTING, T.CLOSED, S.DISCONNECTED),
            (S.CONNECTED, T.CLOSED, S.DISCONNECTED),
            (S.ERROR, T.CLOSED, S.DISCONNECTED),
        ],
    )
    def test_transition(self, state, signal, target):
        assert advance(ConnectionStatus(state), signal).state is target

    def test_full_lifecycle(self):
        status = DISCONNECTED
        for signal in (T.CONNECT, T.OPENED, T.FAILED, T.CONNECT, T.OPENED, T.CLOSED):
            status = advance(status, signal)
        assert status == DISCONNECTED


class TestAdvanceRejected:
    """Transitions the table does not allow."""

    @pytest.mark.parametrize(
        ("state", "signal"),
        [
            (S.DISCONNECTED, T.OPENED),
            (S.DISCONNECTED, T.FAILED),
            (S.CONNECTING, T.CONNECT),
            (S.CONNECTED, T.CONNECT),
            (S.CONNECTED, T.OPENED),
            (S.ERROR, T.OPENED),
            (S.ERROR, T.FAILED),
        ],
    )
    def test_raises(self, state, signal):
        with pytest.raises(StateTransitionError, match=signal.value):
            advance(ConnectionStatus(state), signal)


class TestConnectionStatus:
    """ConnectionStatus."""

    def test_reason_kept_only_for_error(self):
        failed = advance(ConnectionStatus(S.CONNECTING), T.FAILED, "refused")
        assert failed == ConnectionStatus(S.ERROR, "refused")

        opened = advance(ConnectionStatus(S.CONNECTING), T.OPENED, "ignored")
        assert opened.reason is None

    def test_reason_cleared_on_retry(self):
        status = advance(ConnectionStatus(S.ERROR, "refused"), T.CONNECT)
        assert status.reason is None

    def test_is_connected(self):
        assert ConnectionStatus(S.CONNECTED).is_connected is True
        assert DISCONNECTED.is_connected is False
