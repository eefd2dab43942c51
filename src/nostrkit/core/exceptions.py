"""nostrkit exception hierarchy.

Provides typed exceptions for every error category so callers can tell
validation problems, transport failures and protocol anomalies apart
without catching bare ``Exception``. ``asyncio.CancelledError`` is never
wrapped.

Exception hierarchy:

```text
NostrKitError (base -- never raised directly)
├── ConfigurationError         -- config validation, missing keys, bad YAML
├── EventValidationError       -- malformed event or template (also ValueError)
├── IdentifierError            -- malformed bech32 / NIP-19 string (also ValueError)
│   └── ChecksumError          -- bech32 checksum mismatch
├── SignerError                -- signer capability failed or returned a bad event
├── ConnectivityError          -- relay unreachable, network failures
│   ├── RelayConnectionError   -- transport could not be opened or was lost
│   └── RelayTimeoutError      -- connection or response timed out
└── ProtocolError              -- wire protocol misuse
    └── StateTransitionError   -- illegal connection state transition
```

Cryptographic failures (bad signature, id mismatch) are *not* exceptions:
[verify_event()][nostrkit.nips.nip01.verify_event] returns ``False`` so that
untrusted network input can be handled without ``try`` blocks.

See Also:
    [RelayConnection][nostrkit.client.connection.RelayConnection]: Raises
        [ConnectivityError][nostrkit.core.exceptions.ConnectivityError]
        subclasses to the caller that initiated a connection.
    [RelayPool][nostrkit.client.pool.RelayPool]: Captures per-relay
        exceptions into [PublishResult][nostrkit.client.pool.PublishResult]
        values instead of propagating them.
"""

from __future__ import annotations


class NostrKitError(Exception):
    """Base exception for all nostrkit errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrKitError):
    """Invalid or missing configuration (YAML, env vars, CLI flags).

    See Also:
        [load_yaml()][nostrkit.core.yaml.load_yaml]: YAML loading function
            whose output is validated into configuration models.
    """


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


class EventValidationError(NostrKitError, ValueError):
    """Event or template failed structural validation.

    Raised before any hashing or signing is attempted, e.g. for a 63-char
    public key, a non-integer kind, or a tag that is not a list of strings.

    See Also:
        [serialize_event()][nostrkit.nips.nip01.serialize_event]: Raises this
            for invalid input.
        [finalize_event()][nostrkit.nips.nip01.finalize_event]: Raises this
            for an invalid template or secret key.
    """


class IdentifierError(NostrKitError, ValueError):
    """A bech32 or NIP-19 identifier string could not be decoded.

    Covers a missing separator, an unknown symbol, mixed case, invalid
    bit padding, a wrong payload length and an unexpected prefix.
    """


class ChecksumError(IdentifierError):
    """The bech32 checksum does not match the data part.

    Usually means the string was mistyped or truncated.
    """


class SignerError(NostrKitError):
    """A signer could not produce a valid signed event.

    See Also:
        [DelegatedSigner][nostrkit.nips.signers.DelegatedSigner]: Raises this
            when the delegated capability fails or returns an event that does
            not verify.
    """


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrKitError):
    """Base for relay connectivity failures.

    A connectivity error affects one relay only; pool members are never
    affected by each other's failures.
    """


class RelayConnectionError(ConnectivityError):
    """The transport to a relay could not be opened, or was lost.

    The original transport exception is chained as ``__cause__``.
    """


class RelayTimeoutError(ConnectivityError):
    """Connection establishment or an awaited relay response timed out."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(NostrKitError):
    """Client/relay protocol misuse.

    Malformed *inbound* frames are logged and dropped rather than raised;
    this error covers violations detected on the client side.
    """


class StateTransitionError(ProtocolError):
    """A transport signal arrived that the current connection state cannot accept.

    See Also:
        [advance()][nostrkit.client.state.advance]: Pure transition function
            that raises this error.
    """
