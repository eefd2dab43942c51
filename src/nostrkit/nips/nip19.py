"""
NIP-19 bech32 identifiers.

Implements the BIP-173 bech32 string codec and the three fixed-length
NIP-19 entities handled by this library:

* ``npub``: 32-byte x-only public key
* ``nsec``: 32-byte secret key
* ``note``: 32-byte event id

A bech32 string is ``<prefix>1<data><checksum>``. The data part is the
payload re-packed from 8-bit into 5-bit groups, each mapped to a symbol of
a 32-character alphabet. The 6-symbol checksum is the BCH polymod remainder
over the prefix expansion and the data, XOR 1.

Decoding validates the checksum before unpacking the payload. Failures raise
[IdentifierError][nostrkit.core.exceptions.IdentifierError], or
[ChecksumError][nostrkit.core.exceptions.ChecksumError] when only the
checksum is wrong.

Examples:
    ```python
    npub_encode("7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e")
    # 'npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg'

    decode_entity("note1...")
    # Nip19Entity(prefix='note', hex='...')
    ```
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final, NamedTuple

from nostrkit.core.exceptions import ChecksumError, IdentifierError


CHARSET: Final[str] = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_REV: Final[dict[str, int]] = {c: i for i, c in enumerate(CHARSET)}
_GENERATOR: Final[tuple[int, ...]] = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_CHECKSUM_LENGTH: Final[int] = 6
_SEPARATOR: Final[str] = "1"

PREFIX_NPUB: Final[str] = "npub"
PREFIX_NSEC: Final[str] = "nsec"
PREFIX_NOTE: Final[str] = "note"
ENTITY_LENGTH: Final[int] = 32


class Nip19Entity(NamedTuple):
    """A decoded NIP-19 entity.

    Attributes:
        prefix: Human-readable prefix (``npub``, ``nsec`` or ``note``).
        hex: 32-byte payload as 64 lowercase hex chars.
    """

    prefix: str
    hex: str


# ---------------------------------------------------------------------------
# Bech32 primitives
# ---------------------------------------------------------------------------


def _polymod(values: Iterable[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i, gen in enumerate(_GENERATOR):
            if (top >> i) & 1:
                chk ^= gen
    return chk


def _expand_prefix(prefix: str) -> list[int]:
    return [ord(c) >> 5 for c in prefix] + [0] + [ord(c) & 31 for c in prefix]


def _create_checksum(prefix: str, data: list[int]) -> list[int]:
    values = _expand_prefix(prefix) + data
    polymod = _polymod(values + [0] * _CHECKSUM_LENGTH) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(_CHECKSUM_LENGTH)]


def _verify_checksum(prefix: str, data: list[int]) -> bool:
    return _polymod(_expand_prefix(prefix) + data) == 1


def convert_bits(data: Iterable[int], from_bits: int, to_bits: int, *, pad: bool) -> list[int]:
    """Re-group a sequence of *from_bits*-wide integers into *to_bits*-wide ones.

    Args:
        data: Input groups, each ``0 <= value < 2**from_bits``.
        from_bits: Width of the input groups.
        to_bits: Width of the output groups.
        pad: Zero-pad a trailing partial group (encoding). When False
            (decoding), leftover bits must be fewer than *from_bits* and all
            zero.

    Returns:
        The re-grouped values.

    Raises:
        IdentifierError: If an input value is out of range or the padding is
            invalid.
    """
    acc = 0
    bits = 0
    out: list[int] = []
    max_value = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            raise IdentifierError(f"value {value} does not fit in {from_bits} bits")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & max_value)

    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & max_value)
    elif bits >= from_bits or (acc << (to_bits - bits)) & max_value:
        raise IdentifierError("invalid padding")

    return out


def bech32_encode(prefix: str, data: bytes) -> str:
    """Encode *data* under *prefix* as a bech32 string.

    Args:
        prefix: Human-readable prefix, e.g. ``"npub"``.
        data: Raw payload bytes.

    Returns:
        Lowercase bech32 string.

    Raises:
        IdentifierError: If the prefix is empty or contains characters outside
            printable ASCII.
    """
    if not prefix or any(ord(c) < 33 or ord(c) > 126 for c in prefix):
        raise IdentifierError(f"invalid bech32 prefix: {prefix!r}")
    prefix = prefix.lower()
    words = convert_bits(data, 8, 5, pad=True)
    checksum = _create_checksum(prefix, words)
    return prefix + _SEPARATOR + "".join(CHARSET[w] for w in words + checksum)


def bech32_decode(value: str) -> tuple[str, bytes]:
    """Decode a bech32 string into its prefix and payload.

    The separator is the *last* ``1`` in the string, since the prefix may
    itself contain ``1``. All-uppercase input is accepted; mixed case is not.

    Args:
        value: Bech32 string.

    Returns:
        ``(prefix, payload)`` with a lowercase prefix.

    Raises:
        IdentifierError: On a missing separator, empty prefix, short data
            part, unknown symbol, mixed case or invalid padding.
        ChecksumError: If the checksum does not match.
    """
    if not isinstance(value, str):
        raise IdentifierError(f"bech32 value must be a str, got {type(value).__name__}")
    if value.lower() != value and value.upper() != value:
        raise IdentifierError("bech32 string mixes upper and lower case")

    value = value.lower()
    pos = value.rfind(_SEPARATOR)
    if pos < 1:
        raise IdentifierError("bech32 string has no separator or an empty prefix")
    if len(value) - pos - 1 < _CHECKSUM_LENGTH:
        raise IdentifierError("bech32 data part is shorter than the checksum")

    prefix = value[:pos]
    if any(ord(c) < 33 or ord(c) > 126 for c in prefix):
        raise IdentifierError(f"invalid bech32 prefix: {prefix!r}")

    words: list[int] = []
    for char in value[pos + 1 :]:
        word = _CHARSET_REV.get(char)
        if word is None:
            raise IdentifierError(f"invalid bech32 character: {char!r}")
        words.append(word)

    if not _verify_checksum(prefix, words):
        raise ChecksumError(f"bech32 checksum mismatch for prefix {prefix!r}")

    payload = convert_bits(words[:-_CHECKSUM_LENGTH], 5, 8, pad=False)
    return prefix, bytes(payload)


# ---------------------------------------------------------------------------
# Typed NIP-19 entities
# ---------------------------------------------------------------------------


def _hex_to_payload(value: str, name: str) -> bytes:
    if not isinstance(value, str) or len(value) != ENTITY_LENGTH * 2:
        raise IdentifierError(f"{name} must be {ENTITY_LENGTH * 2} hex characters")
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise IdentifierError(f"{name} is not valid hex") from None


def _encode_entity(prefix: str, value: str) -> str:
    return bech32_encode(prefix, _hex_to_payload(value, prefix))


def _decode_entity(expected: str, value: str) -> str:
    prefix, payload = bech32_decode(value)
    if prefix != expected:
        raise IdentifierError(f"expected prefix {expected!r}, got {prefix!r}")
    if len(payload) != ENTITY_LENGTH:
        raise IdentifierError(f"{expected} payload must be {ENTITY_LENGTH} bytes, got {len(payload)}")
    return payload.hex()


def npub_encode(pubkey: str) -> str:
    """Encode a 64-char hex public key as ``npub1...``."""
    return _encode_entity(PREFIX_NPUB, pubkey)


def npub_decode(value: str) -> str:
    """Decode ``npub1...`` into a 64-char hex public key."""
    return _decode_entity(PREFIX_NPUB, value)


def nsec_encode(secret_key: str) -> str:
    """Encode a 64-char hex secret key as ``nsec1...``."""
    return _encode_entity(PREFIX_NSEC, secret_key)


def nsec_decode(value: str) -> str:
    """Decode ``nsec1...`` into a 64-char hex secret key."""
    return _decode_entity(PREFIX_NSEC, value)


def note_encode(event_id: str) -> str:
    """Encode a 64-char hex event id as ``note1...``."""
    return _encode_entity(PREFIX_NOTE, event_id)


def note_decode(value: str) -> str:
    """Decode ``note1...`` into a 64-char hex event id."""
    return _decode_entity(PREFIX_NOTE, value)


_ENTITY_PREFIXES: Final[frozenset[str]] = frozenset({PREFIX_NPUB, PREFIX_NSEC, PREFIX_NOTE})


def decode_entity(value: str) -> Nip19Entity:
    """Decode any supported NIP-19 string, dispatching on its prefix.

    Raises:
        IdentifierError: If the string is malformed, the prefix is not one of
            ``npub``, ``nsec``, ``note``, or the payload is not 32 bytes.
    """
    prefix, payload = bech32_decode(value)
    if prefix not in _ENTITY_PREFIXES:
        raise IdentifierError(f"unsupported NIP-19 prefix: {prefix!r}")
    if len(payload) != ENTITY_LENGTH:
        raise IdentifierError(f"{prefix} payload must be {ENTITY_LENGTH} bytes, got {len(payload)}")
    return Nip19Entity(prefix=prefix, hex=payload.hex())
