"""Nostr key management utilities.

Provides functions and a Pydantic model for generating Nostr key pairs and
loading a secret key from an environment variable. Both ``nsec1`` (bech32)
and 64-char hex secret keys are accepted.

Warning:
    Secret keys must never be stored in configuration files or logged.
    Always pass them through environment variables or a secret manager.

See Also:
    [LocalSigner][nostrkit.nips.signers.LocalSigner]: Accepts the
        ``nostr_sdk.Keys`` returned here.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    print(keys.public_key().to_bech32())
    ```
"""

from __future__ import annotations

import os
from typing import Any, NamedTuple

from nostr_sdk import Keys
from pydantic import BaseModel, Field, model_validator


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


class KeyPair(NamedTuple):
    """Hex and bech32 renderings of a freshly generated key pair."""

    secret_hex: str
    public_hex: str
    nsec: str
    npub: str


def generate_key_pair() -> KeyPair:
    """Generate a random secp256k1 key pair.

    Returns:
        The secret and public key in hex and NIP-19 forms.
    """
    keys = Keys.generate()
    return KeyPair(
        secret_hex=keys.secret_key().to_hex(),
        public_hex=keys.public_key().to_hex(),
        nsec=keys.secret_key().to_bech32(),
        npub=keys.public_key().to_bech32(),
    )


def load_keys_from_env(env_var: str) -> Keys:
    """Load Nostr keys from an environment variable.

    Args:
        env_var: Name of the environment variable containing the secret key.

    Returns:
        A ``nostr_sdk.Keys`` instance ready for signing operations.

    Raises:
        ValueError: If the environment variable is not set or is empty.
        nostr_sdk.NostrSdkError: If the key value is malformed.
    """
    value = os.getenv(env_var)

    if not value:
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: nostrkit keygen"
        )

    return Keys.parse(value.strip())


class KeysConfig(BaseModel):
    """Pydantic model that loads Nostr keys from an environment variable.

    The ``keys`` field is populated during validation from the environment
    variable named by ``keys_env`` unless given explicitly.

    Attributes:
        keys_env: Environment variable name for the secret key.
        keys: Loaded ``nostr_sdk.Keys`` instance.

    Warning:
        The ``keys`` field holds a live secret key. Do not serialize this
        model. ``arbitrary_types_allowed`` is required because
        ``nostr_sdk.Keys`` is an FFI type.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for the secret key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env (required)")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        """Auto-populate the ``keys`` field from the environment variable."""
        if isinstance(data, dict) and "keys" not in data:
            data = {**data, "keys": load_keys_from_env(data.get("keys_env", ENV_PRIVATE_KEY))}
        return data
