"""NIP implementations: event codec, identifiers, signers and tag helpers.

Attributes:
    nip01: Canonical serialization, hashing, Schnorr signing/verification,
        recency ordering, text note and profile templates.
    nip02: Contact lists (kind 3).
    nip10: Reply threading.
    nip19: bech32 ``npub`` / ``nsec`` / ``note`` identifiers.
    nip57: Lightning zaps.
    nip65: Relay list metadata (kind 10002).
    signers: [Signer][nostrkit.nips.signers.Signer] capability with local
        and delegated variants.
"""

from .nip01 import (
    compute_event_id,
    create_profile_metadata,
    create_text_note,
    finalize_event,
    get_public_key,
    serialize_event,
    sort_by_recency,
    validate_event,
    verify_event,
)
from .nip19 import (
    Nip19Entity,
    bech32_decode,
    bech32_encode,
    decode_entity,
    note_decode,
    note_encode,
    npub_decode,
    npub_encode,
    nsec_decode,
    nsec_encode,
)
from .signers import DelegatedSigner, LocalSigner, Signer


__all__ = [
    "DelegatedSigner",
    "LocalSigner",
    "Nip19Entity",
    "Signer",
    "bech32_decode",
    "bech32_encode",
    "compute_event_id",
    "create_profile_metadata",
    "create_text_note",
    "decode_entity",
    "finalize_event",
    "get_public_key",
    "note_decode",
    "note_encode",
    "npub_decode",
    "npub_encode",
    "nsec_decode",
    "nsec_encode",
    "serialize_event",
    "sort_by_recency",
    "validate_event",
    "verify_event",
]
