"""
Signing capabilities.

Code that needs to sign events depends on the
[Signer][nostrkit.nips.signers.Signer] interface rather than on a secret
key, so the same code works with a key held in process memory and with a
key held by an external agent (a browser extension, a remote bunker, a
hardware device).

Variants:

* [LocalSigner][nostrkit.nips.signers.LocalSigner]: signs with a secret
  key via [finalize_event()][nostrkit.nips.nip01.finalize_event].
* [DelegatedSigner][nostrkit.nips.signers.DelegatedSigner]: forwards the
  template to host-provided async callables and verifies what comes back.

Examples:
    ```python
    signer = LocalSigner(load_keys_from_env("PRIVATE_KEY"))
    event = await signer.sign_event(create_text_note("hello"))
    await pool.publish(event)
    ```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from nostr_sdk import Keys

from nostrkit.core.exceptions import EventValidationError, SignerError
from nostrkit.models._validation import is_lower_hex
from nostrkit.models.event import Event, EventTemplate

from .nip01 import _load_keys, finalize_event, verify_event


class Signer(ABC):
    """Capability to report a public key and sign event templates."""

    @abstractmethod
    async def get_public_key(self) -> str:
        """Return the signer's public key as 64 lowercase hex chars."""

    @abstractmethod
    async def sign_event(self, template: EventTemplate) -> Event:
        """Return *template* hashed and signed.

        Raises:
            EventValidationError: If the template is malformed.
            SignerError: If the capability fails.
        """


class LocalSigner(Signer):
    """Signs with a secret key held in memory.

    Args:
        secret_key: Hex or ``nsec`` string, 32 raw bytes, or ``nostr_sdk.Keys``.

    Raises:
        EventValidationError: If the secret key is malformed.
    """

    def __init__(self, secret_key: str | bytes | Keys) -> None:
        self._keys = _load_keys(secret_key)

    async def get_public_key(self) -> str:
        return self._keys.public_key().to_hex()

    async def sign_event(self, template: EventTemplate) -> Event:
        return finalize_event(template, self._keys)

    def __repr__(self) -> str:
        return f"LocalSigner(pubkey={self._keys.public_key().to_hex()})"


class DelegatedSigner(Signer):
    """Signs through an external capability.

    The capability receives the template as a JSON-compatible dict (``kind``,
    ``content``, ``tags``, ``created_at``) and must return the complete
    signed event as a mapping. The result is verified; an event that fails
    verification or carries another public key is rejected.

    Args:
        get_public_key: Async callable returning the hex public key.
        sign_event: Async callable signing a template dict.
    """

    def __init__(
        self,
        get_public_key: Callable[[], Awaitable[str]],
        sign_event: Callable[[dict[str, Any]], Awaitable[Mapping[str, Any]]],
    ) -> None:
        self._get_public_key = get_public_key
        self._sign_event = sign_event
        self._pubkey: str | None = None

    async def get_public_key(self) -> str:
        if self._pubkey is None:
            try:
                pubkey = await self._get_public_key()
            except Exception as e:  # noqa: BLE001  # host capability may raise anything
                raise SignerError(f"delegated signer failed to report a public key: {e}") from e
            if not is_lower_hex(pubkey, 64):
                raise SignerError("delegated signer returned a malformed public key")
            self._pubkey = pubkey
        return self._pubkey

    async def sign_event(self, template: EventTemplate) -> Event:
        if not isinstance(template, EventTemplate):
            raise EventValidationError(
                f"template must be an EventTemplate, got {type(template).__name__}"
            )
        pubkey = await self.get_public_key()

        try:
            signed = await self._sign_event(template.to_dict())
        except Exception as e:  # noqa: BLE001  # host capability may raise anything
            raise SignerError(f"delegated signer failed: {e}") from e

        if isinstance(signed, Event):
            signed = signed.to_dict()
        if not verify_event(signed):
            raise SignerError("delegated signer returned an event that does not verify")
        if signed["pubkey"] != pubkey:
            raise SignerError("delegated signer signed with an unexpected public key")
        return Event.from_dict(signed)
