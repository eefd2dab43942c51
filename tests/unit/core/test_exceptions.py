"""Unit tests for the nostrkit exception hierarchy.

Tests verify:
- issubclass relationships match the documented tree
- validation errors are also ValueError
- except clauses catch the expected subclasses
"""

import pytest

from nostrkit.core.exceptions import (
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


ALL_CONCRETE = (
    ConfigurationError,
    EventValidationError,
    IdentifierError,
    ChecksumError,
    SignerError,
    RelayConnectionError,
    RelayTimeoutError,
    StateTransitionError,
)


# =============================================================================
# Hierarchy Tests
# =============================================================================


class TestExceptionHierarchy:
    """Verify issubclass relationships match the documented tree."""

    @pytest.mark.parametrize("exc_cls", ALL_CONCRETE)
    def test_all_inherit_from_base(self, exc_cls: type) -> None:
        assert issubclass(exc_cls, NostrKitError)

    @pytest.mark.parametrize("exc_cls", [EventValidationError, IdentifierError, ChecksumError])
    def test_validation_errors_are_value_errors(self, exc_cls: type) -> None:
        assert issubclass(exc_cls, ValueError)

    def test_checksum_error_is_identifier_error(self) -> None:
        assert issubclass(ChecksumError, IdentifierError)

    @pytest.mark.parametrize("exc_cls", [RelayConnectionError, RelayTimeoutError])
    def test_transport_errors_are_connectivity_errors(self, exc_cls: type) -> None:
        assert issubclass(exc_cls, ConnectivityError)

    def test_state_transition_error_is_protocol_error(self) -> None:
        assert issubclass(StateTransitionError, ProtocolError)

    def test_connectivity_not_value_error(self) -> None:
        assert not issubclass(ConnectivityError, ValueError)


class TestCatching:
    """except clauses catch subclasses and keep messages."""

    def test_catch_by_base(self) -> None:
        with pytest.raises(NostrKitError, match="refused"):
            raise RelayConnectionError("refused")

    def test_catch_checksum_as_value_error(self) -> None:
        with pytest.raises(ValueError, match="checksum"):
            raise ChecksumError("bad checksum")
