"""
filosign_core.encryption
------------------------
Hybrid encryption engine: one AES-256-GCM document key per envelope,
wrapped separately (ECIES over secp256k1) for each of the two parties.
"""

from __future__ import annotations
from cryptography.exceptions import UnsupportedAlgorithm

from .access import resolve_access
from .constants import DOCUMENT_AAD
from .crypto import PrivateKeyLike, PublicKeyLike, aead_encrypt, ecies_wrap, generate_symmetric_key, load_public_key
from .envelope import EncryptedEnvelope
from .errors import AccessDenied, EncryptionError
from .logger import get_logger
from .utils import new_retrieval_id, now_ts

log = get_logger("FiloSign.Encryption")


def encrypt(plaintext: bytes, public_key_a: PublicKeyLike, public_key_b: PublicKeyLike) -> EncryptedEnvelope:
    """
    Encrypt ``plaintext`` so that exactly the holders of the private keys
    behind ``public_key_a`` and ``public_key_b`` can read it.

    Raises KeyFormatError for malformed public keys, EncryptionError if a
    primitive fails.
    """
    if not isinstance(plaintext, (bytes, bytearray)):
        raise TypeError(f"plaintext must be bytes, got {type(plaintext).__name__}")

    # Parse both keys before generating anything so caller errors surface first.
    pk_a = load_public_key(public_key_a)
    pk_b = load_public_key(public_key_b)

    try:
        key = generate_symmetric_key()
        nonce, ct = aead_encrypt(key, bytes(plaintext), aad=DOCUMENT_AAD)
        wrapped_a = ecies_wrap(pk_a, key)
        wrapped_b = ecies_wrap(pk_b, key)
    except (ValueError, UnsupportedAlgorithm, OverflowError) as e:
        log.error(f"[ENCRYPT] primitive failure: {e}")
        raise EncryptionError(f"document encryption failed: {e}") from e
    finally:
        key = None

    env = EncryptedEnvelope(
        ciphertext=nonce + ct,
        wrapped_key_for_party_a=wrapped_a,
        wrapped_key_for_party_b=wrapped_b,
        retrieval_id=new_retrieval_id(),
        created_at=now_ts(),
    )
    log.info(f"[ENCRYPT] envelope {env.retrieval_id} | bytes={len(plaintext)}")
    return env


def decrypt(envelope: EncryptedEnvelope, private_key: PrivateKeyLike) -> bytes:
    """Return the plaintext or raise AccessDenied when ``private_key`` matches neither slot."""
    decision = resolve_access(envelope, private_key)
    if not decision.granted:
        raise AccessDenied(decision.reason or "credential matches neither key slot")
    return decision.plaintext
