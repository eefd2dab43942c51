"""
Unit tests for nips.nip19 module.

Tests:
- Known npub / nsec vectors, cross-checked against nostr-sdk
- bech32_encode() / bech32_decode() generic codec
- Checksum corruption raises ChecksumError
- Mixed case, missing separator, bad characters, bad padding
- Typed wrappers enforce prefix and 32-byte payloads
- decode_entity() dispatch
"""

import pytest
from nostr_sdk import Keys

from nostrkit.core.exceptions import ChecksumError, IdentifierError
from nostrkit.nips.nip19 import (
    CHARSET,
    Nip19Entity,
    bech32_decode,
    bech32_encode,
    convert_bits,
    decode_entity,
    note_decode,
    note_encode,
    npub_decode,
    npub_encode,
    nsec_decode,
    nsec_encode,
)


SECRET_HEX = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
SECRET_NSEC = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
PUBKEY_HEX = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
PUBKEY_NPUB = "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg"


def _corrupt(value: str, index: int) -> str:
    """Replace one data character with a different valid bech32 character."""
    original = value[index]
    replacement = next(c for c in CHARSET if c != original)
    return value[:index] + replacement + value[index + 1 :]


# =============================================================================
# Known Vector Tests
# =============================================================================


class TestKnownVectors:
    """NIP-19 test vectors."""

    def test_npub_encode(self):
        assert npub_encode(PUBKEY_HEX) == PUBKEY_NPUB

    def test_npub_decode(self):
        assert npub_decode(PUBKEY_NPUB) == PUBKEY_HEX

    def test_nsec_encode(self):
        assert nsec_encode(SECRET_HEX) == SECRET_NSEC

    def test_nsec_decode(self):
        assert nsec_decode(SECRET_NSEC) == SECRET_HEX

    def test_matches_nostr_sdk(self):
        keys = Keys.generate()
        public_hex = keys.public_key().to_hex()
        assert npub_encode(public_hex) == keys.public_key().to_bech32()
        assert nsec_encode(keys.secret_key().to_hex()) == keys.secret_key().to_bech32()

    def test_note_round_trip(self):
        event_id = "d" * 64
        encoded = note_encode(event_id)
        assert encoded.startswith("note1")
        assert note_decode(encoded) == event_id

    def test_uppercase_hex_accepted(self):
        assert npub_encode(PUBKEY_HEX.upper()) == PUBKEY_NPUB


# =============================================================================
# Generic Codec Tests
# =============================================================================


class TestBech32Codec:
    """bech32_encode() / bech32_decode()."""

    def test_prefix_with_digit_one(self):
        """The separator is the last '1'."""
        encoded = bech32_encode("a1b", b"\x01\x02")
        assert bech32_decode(encoded) == ("a1b", b"\x01\x02")

    def test_empty_payload(self):
        encoded = bech32_encode("test", b"")
        assert bech32_decode(encoded) == ("test", b"")

    def test_uppercase_accepted(self):
        assert bech32_decode(PUBKEY_NPUB.upper()) == ("npub", bytes.fromhex(PUBKEY_HEX))

    def test_mixed_case_rejected(self):
        with pytest.raises(IdentifierError, match="case"):
            bech32_decode("Npub" + PUBKEY_NPUB[4:])

    @pytest.mark.parametrize("value", ["", "npub", "1qqqqqqqq", "npub1abc"])
    def test_structure_rejected(self, value):
        with pytest.raises(IdentifierError):
            bech32_decode(value)

    def test_invalid_character(self):
        with pytest.raises(IdentifierError, match="character"):
            bech32_decode(PUBKEY_NPUB[:-1] + "b")

    def test_non_string(self):
        with pytest.raises(IdentifierError):
            bech32_decode(b"npub1")  # type: ignore[arg-type]

    def test_invalid_prefix_on_encode(self):
        with pytest.raises(IdentifierError):
            bech32_encode("", b"\x00")


class TestChecksum:
    """Any single-character corruption is detected."""

    @pytest.mark.parametrize("index", [5, 10, 30, 50, -1, -6])
    def test_npub_corruption(self, index):
        index = index % len(PUBKEY_NPUB)
        with pytest.raises(ChecksumError):
            npub_decode(_corrupt(PUBKEY_NPUB, index))

    def test_nsec_corruption(self):
        with pytest.raises(ChecksumError):
            nsec_decode(_corrupt(SECRET_NSEC, 20))

    def test_checksum_error_is_value_error(self):
        with pytest.raises(ValueError):
            npub_decode(_corrupt(PUBKEY_NPUB, 12))


class TestConvertBits:
    """convert_bits() regrouping and padding rules."""

    def test_eight_to_five_and_back(self):
        data = list(bytes.fromhex(PUBKEY_HEX))
        words = convert_bits(data, 8, 5, pad=True)
        assert convert_bits(words, 5, 8, pad=False) == data

    def test_non_zero_padding_rejected(self):
        with pytest.raises(IdentifierError, match="padding"):
            convert_bits([31], 5, 8, pad=False)

    def test_out_of_range_value(self):
        with pytest.raises(IdentifierError):
            convert_bits([256], 8, 5, pad=True)


# =============================================================================
# Typed Entity Tests
# =============================================================================


class TestTypedEntities:
    """Typed wrappers enforce prefix and length."""

    def test_wrong_prefix(self):
        with pytest.raises(IdentifierError, match="expected prefix"):
            nsec_decode(PUBKEY_NPUB)

    def test_wrong_payload_length(self):
        short = bech32_encode("npub", b"\x01" * 31)
        with pytest.raises(IdentifierError, match="32 bytes"):
            npub_decode(short)

    @pytest.mark.parametrize("bad", ["", "ab", "z" * 64, "a" * 62])
    def test_encode_rejects_bad_hex(self, bad):
        with pytest.raises(IdentifierError):
            npub_encode(bad)


class TestDecodeEntity:
    """decode_entity() dispatch."""

    def test_npub(self):
        assert decode_entity(PUBKEY_NPUB) == Nip19Entity("npub", PUBKEY_HEX)

    def test_nsec(self):
        assert decode_entity(SECRET_NSEC) == Nip19Entity("nsec", SECRET_HEX)

    def test_note(self):
        assert decode_entity(note_encode("e" * 64)).prefix == "note"

    def test_unsupported_prefix(self):
        with pytest.raises(IdentifierError, match="unsupported"):
            decode_entity(bech32_encode("nprofile", b"\x00" * 32))
