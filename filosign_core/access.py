"""
filosign_core.access
--------------------
Access control and decryption resolver.

The envelope records no addresses, so authorization is purely
cryptographic: a credential is authorized iff it can unwrap one of the two
key slots. Party A is always tried first.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag

from .constants import DOCUMENT_AAD, NONCE_SIZE
from .crypto import PrivateKeyLike, aead_decrypt, ecies_unwrap, load_private_key
from .envelope import EncryptedEnvelope
from .logger import get_logger

log = get_logger("FiloSign.Access")

REASON_NO_SLOT = "credential matches neither key slot"
REASON_DOC_AUTH = "document authentication failed"


class Role(str, Enum):
    PARTY_A = "partyA"
    PARTY_B = "partyB"
    NONE = "none"


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    role: Role
    plaintext: Optional[bytes] = None
    reason: Optional[str] = None

    @classmethod
    def denied(cls, reason: str = REASON_NO_SLOT) -> "AccessDecision":
        return cls(granted=False, role=Role.NONE, reason=reason)


def _slots(envelope: EncryptedEnvelope) -> Tuple[Tuple[Role, bytes], ...]:
    return (
        (Role.PARTY_A, envelope.wrapped_key_for_party_a),
        (Role.PARTY_B, envelope.wrapped_key_for_party_b),
    )


def _try_unwrap(sk, wrapped: bytes) -> Optional[bytes]:
    try:
        return ecies_unwrap(sk, wrapped)
    except (InvalidTag, ValueError):
        return None


def _unwrap_slots(envelope: EncryptedEnvelope, credential: PrivateKeyLike) -> Tuple[Role, Optional[bytes]]:
    sk = load_private_key(credential)  # KeyFormatError is a caller error, not a denial
    for role, wrapped in _slots(envelope):
        key = _try_unwrap(sk, wrapped)
        if key is not None:
            return role, key
    return Role.NONE, None


def holds_slot(envelope: EncryptedEnvelope, credential: PrivateKeyLike, role: Role) -> bool:
    """
    True iff ``credential`` unwraps the key slot of ``role``.

    Unlike check_access this does not stop at party A, so a document whose
    two slots wrap the same key still reports both roles for that key.
    """
    if role is Role.NONE:
        raise ValueError("role must be PARTY_A or PARTY_B")
    sk = load_private_key(credential)
    wrapped = dict(_slots(envelope))[role]
    return _try_unwrap(sk, wrapped) is not None


def check_access(envelope: EncryptedEnvelope, credential: PrivateKeyLike) -> AccessDecision:
    """Authorization only: unwraps the key slots but never decrypts the document."""
    role, key = _unwrap_slots(envelope, credential)
    if key is None:
        log.info(f"[ACCESS] {envelope.retrieval_id} denied")
        return AccessDecision.denied()
    return AccessDecision(granted=True, role=role)


def resolve_access(envelope: EncryptedEnvelope, credential: PrivateKeyLike) -> AccessDecision:
    """
    Decide whether ``credential`` may read ``envelope`` and, if so, return
    the plaintext together with the role it unlocked.

    Never raises for an unauthorized or tampered envelope; both come back
    as ``granted=False``. Raises KeyFormatError for a malformed credential.
    """
    role, key = _unwrap_slots(envelope, credential)
    if key is None:
        log.info(f"[ACCESS] {envelope.retrieval_id} denied")
        return AccessDecision.denied()

    blob = envelope.ciphertext
    try:
        plaintext = aead_decrypt(key, blob[:NONCE_SIZE], blob[NONCE_SIZE:], aad=DOCUMENT_AAD)
    except (InvalidTag, ValueError):
        log.warning(f"[ACCESS] {envelope.retrieval_id} key slot {role.value} opened but ciphertext failed authentication")
        return AccessDecision.denied(REASON_DOC_AUTH)
    finally:
        key = None

    log.info(f"[ACCESS] {envelope.retrieval_id} granted | role={role.value}")
    return AccessDecision(granted=True, role=role, plaintext=plaintext)
