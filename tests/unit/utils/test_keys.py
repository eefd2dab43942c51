"""
Unit tests for utils.keys module.

Tests:
- generate_key_pair() - random key generation in hex and bech32
- load_keys_from_env() - environment variable loading
- KeysConfig - Pydantic model auto-populating keys
"""

import os
from unittest.mock import patch

import pytest
from nostr_sdk import Keys
from pydantic import ValidationError

from nostrkit.nips.nip19 import npub_decode, nsec_decode
from nostrkit.utils.keys import ENV_PRIVATE_KEY, KeysConfig, generate_key_pair, load_keys_from_env


VALID_HEX_KEY = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
VALID_NSEC_KEY = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret


# =============================================================================
# generate_key_pair() Tests
# =============================================================================


class TestGenerateKeyPair:
    """generate_key_pair()."""

    def test_forms_agree(self):
        pair = generate_key_pair()
        assert len(pair.secret_hex) == 64
        assert len(pair.public_hex) == 64
        assert nsec_decode(pair.nsec) == pair.secret_hex
        assert npub_decode(pair.npub) == pair.public_hex

    def test_unique(self):
        assert generate_key_pair().secret_hex != generate_key_pair().secret_hex


# =============================================================================
# load_keys_from_env() Tests
# =============================================================================


class TestLoadKeysFromEnv:
    """load_keys_from_env()."""

    def test_hex(self):
        with patch.dict(os.environ, {"TEST_KEY": VALID_HEX_KEY}):
            keys = load_keys_from_env("TEST_KEY")
        assert keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_nsec_with_whitespace(self):
        with patch.dict(os.environ, {"TEST_KEY": f"  {VALID_NSEC_KEY}\n"}):
            keys = load_keys_from_env("TEST_KEY")
        assert keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="nostrkit keygen"):
                load_keys_from_env("TEST_KEY")

    def test_empty(self):
        with patch.dict(os.environ, {"TEST_KEY": ""}):
            with pytest.raises(ValueError, match="TEST_KEY"):
                load_keys_from_env("TEST_KEY")

    def test_malformed(self):
        with patch.dict(os.environ, {"TEST_KEY": "not-a-key"}):
            with pytest.raises(Exception):
                load_keys_from_env("TEST_KEY")


# =============================================================================
# KeysConfig Tests
# =============================================================================


class TestKeysConfig:
    """KeysConfig model."""

    def test_default_env_var(self):
        with patch.dict(os.environ, {ENV_PRIVATE_KEY: VALID_HEX_KEY}):
            config = KeysConfig()
        assert config.keys_env == ENV_PRIVATE_KEY
        assert config.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_custom_env_var(self):
        with patch.dict(os.environ, {"OTHER_KEY": VALID_NSEC_KEY}):
            config = KeysConfig(keys_env="OTHER_KEY")
        assert config.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_explicit_keys(self):
        keys = Keys.parse(VALID_HEX_KEY)
        with patch.dict(os.environ, {}, clear=True):
            config = KeysConfig(keys=keys)
        assert config.keys is keys

    def test_missing_env_var(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises((ValueError, ValidationError)):
                KeysConfig()
