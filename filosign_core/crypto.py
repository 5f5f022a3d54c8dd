"""
filosign_core.crypto
--------------------
Cryptographic primitives for FiloSign:

- AES-256-GCM: authenticated document encryption
- secp256k1 ECIES (ECDH + HKDF-SHA256 + AES-GCM): per-party key wrapping
- Ethereum personal_sign recovery: public key from (message, signature)

Keys are the wallet's own secp256k1 keys, so a key discovered from a
signature can be used for wrapping without any extra key exchange.
"""

from __future__ import annotations
from typing import Tuple, Optional, Union
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from eth_account.messages import defunct_hash_message
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as EthKeysValidationError
import os
from .constants import AES_KEY_BITS, EC_POINT_SIZE, HKDF_INFO_WRAP, NONCE_SIZE, TAG_SIZE
from .errors import KeyFormatError, SignatureRecoveryError
from .utils import hex_to_bytes

PublicKeyLike = Union[bytes, str, ec.EllipticCurvePublicKey]
PrivateKeyLike = Union[bytes, str, ec.EllipticCurvePrivateKey]

CURVE = ec.SECP256K1()
WRAPPED_KEY_SIZE = EC_POINT_SIZE + NONCE_SIZE + AES_KEY_BITS // 8 + TAG_SIZE


# --------- secp256k1 keys ----------
def secp256k1_generate() -> Tuple[bytes, bytes]:
    """Return (32-byte private scalar, 65-byte uncompressed public point)."""
    sk = ec.generate_private_key(CURVE)
    return private_key_bytes(sk), public_key_bytes(sk.public_key())

def private_key_bytes(sk: ec.EllipticCurvePrivateKey) -> bytes:
    return sk.private_numbers().private_value.to_bytes(32, "big")

def public_key_bytes(pk: ec.EllipticCurvePublicKey) -> bytes:
    return pk.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint)

def _as_bytes(value: Union[bytes, bytearray, str], what: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return hex_to_bytes(value)
        except ValueError as e:
            raise KeyFormatError(f"{what} is not valid hex") from e
    raise KeyFormatError(f"{what} must be bytes or a hex string, got {type(value).__name__}")

def load_public_key(pub: PublicKeyLike) -> ec.EllipticCurvePublicKey:
    """
    Accepts an EllipticCurvePublicKey or its encoding as bytes/hex:
    65-byte uncompressed, 64-byte raw X||Y, or 33-byte compressed.
    """
    if isinstance(pub, ec.EllipticCurvePublicKey):
        if not isinstance(pub.curve, ec.SECP256K1):
            raise KeyFormatError(f"public key is on {pub.curve.name}, expected secp256k1")
        return pub
    raw = _as_bytes(pub, "public key")
    if len(raw) == 64:
        raw = b"\x04" + raw
    if len(raw) not in (33, 65):
        raise KeyFormatError(f"public key has invalid length {len(raw)}")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, raw)
    except ValueError as e:
        raise KeyFormatError("public key is not a valid secp256k1 point") from e

def load_private_key(priv: PrivateKeyLike) -> ec.EllipticCurvePrivateKey:
    if isinstance(priv, ec.EllipticCurvePrivateKey):
        if not isinstance(priv.curve, ec.SECP256K1):
            raise KeyFormatError(f"private key is on {priv.curve.name}, expected secp256k1")
        return priv
    raw = _as_bytes(priv, "private key")
    if len(raw) != 32:
        raise KeyFormatError(f"private key must be 32 bytes, got {len(raw)}")
    try:
        return ec.derive_private_key(int.from_bytes(raw, "big"), CURVE)
    except ValueError as e:
        raise KeyFormatError("private key scalar is out of range") from e

def public_key_to_address(pub: PublicKeyLike) -> str:
    """Ethereum address (lowercase, 0x-prefixed) of a secp256k1 public key."""
    point = public_key_bytes(load_public_key(pub))
    return keys.PublicKey(point[1:]).to_address().lower()


# --------- AES-GCM ----------
def generate_symmetric_key() -> bytes:
    return AESGCM.generate_key(bit_length=AES_KEY_BITS)

def aead_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    aes = AESGCM(key)
    nonce = os.urandom(NONCE_SIZE)
    ct = aes.encrypt(nonce, plaintext, aad)
    return nonce, ct

def aead_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    aes = AESGCM(key)
    return aes.decrypt(nonce, ciphertext, aad)


# --------- ECIES key wrapping ----------
def derive_wrap_key(shared: bytes, ephemeral_pub: bytes, info: bytes = HKDF_INFO_WRAP) -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=ephemeral_pub, info=info)
    return hkdf.derive(shared)  # 256-bit AEAD key

def ecies_wrap(recipient_pub: PublicKeyLike, data: bytes) -> bytes:
    """
    Encrypt ``data`` so only the holder of ``recipient_pub``'s private key can read it.

    Output: ephemeral_pub(65) || nonce(12) || AES-GCM(data) || tag(16).
    The ephemeral point is both the HKDF salt and the AEAD associated data.
    """
    pk = load_public_key(recipient_pub)
    eph = ec.generate_private_key(CURVE)
    eph_pub = public_key_bytes(eph.public_key())
    key = derive_wrap_key(eph.exchange(ec.ECDH(), pk), eph_pub)
    nonce, ct = aead_encrypt(key, data, aad=eph_pub)
    return eph_pub + nonce + ct

def ecies_unwrap(recipient_priv: PrivateKeyLike, blob: bytes) -> bytes:
    """
    Inverse of ecies_wrap.

    Raises cryptography.exceptions.InvalidTag when the key does not match,
    ValueError when the blob is structurally broken.
    """
    sk = load_private_key(recipient_priv)
    if len(blob) < EC_POINT_SIZE + NONCE_SIZE + TAG_SIZE:
        raise ValueError("wrapped key is truncated")
    eph_pub = blob[:EC_POINT_SIZE]
    nonce = blob[EC_POINT_SIZE:EC_POINT_SIZE + NONCE_SIZE]
    ct = blob[EC_POINT_SIZE + NONCE_SIZE:]
    peer = ec.EllipticCurvePublicKey.from_encoded_point(CURVE, eph_pub)
    key = derive_wrap_key(sk.exchange(ec.ECDH(), peer), eph_pub)
    return aead_decrypt(key, nonce, ct, aad=eph_pub)


# --------- Signature recovery ----------
def _normalize_signature(signature: Union[bytes, str]) -> bytes:
    if isinstance(signature, str):
        try:
            signature = hex_to_bytes(signature)
        except ValueError as e:
            raise SignatureRecoveryError("signature is not valid hex") from e
    if not isinstance(signature, (bytes, bytearray)):
        raise SignatureRecoveryError(f"signature must be bytes or hex, got {type(signature).__name__}")
    sig = bytes(signature)
    if len(sig) != 65:
        raise SignatureRecoveryError(f"signature must be 65 bytes (r||s||v), got {len(sig)}")
    v = sig[64]
    if v in (27, 28):
        v -= 27
    elif v >= 35:
        v = (v - 35) % 2  # EIP-155
    if v not in (0, 1):
        raise SignatureRecoveryError(f"invalid recovery id {sig[64]}")
    return sig[:64] + bytes([v])

def recover_public_key(message: str, signature: Union[bytes, str]) -> bytes:
    """
    Recover the 65-byte uncompressed public key that produced an Ethereum
    ``personal_sign`` signature over ``message``.
    """
    sig = _normalize_signature(signature)
    digest = defunct_hash_message(text=message)
    try:
        pk = keys.Signature(signature_bytes=sig).recover_public_key_from_msg_hash(bytes(digest))
    except (BadSignature, EthKeysValidationError, ValueError) as e:
        raise SignatureRecoveryError(f"could not recover public key: {e}") from e
    return b"\x04" + pk.to_bytes()
