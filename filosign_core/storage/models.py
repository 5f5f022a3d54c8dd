# filosign_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, replace

from filosign_core.constants import STATUS_PENDING


@dataclass(frozen=True)
class PublicKeyRecord:
    """
    A wallet public key discovered from a signature.

    Records are never mutated; the cache replaces them wholesale.
    """
    address: str            # lowercase 0x-prefixed
    public_key: str         # 0x04-prefixed uncompressed secp256k1 point
    discovered_at: float    # epoch seconds
    verified: bool = True

    def is_expired(self, now: float, expiry_seconds: float) -> bool:
        return now - self.discovered_at > expiry_seconds

    @property
    def public_key_bytes(self) -> bytes:
        return bytes.fromhex(self.public_key[2:])


@dataclass(frozen=True)
class DocumentMetadata:
    """
    Listing metadata for a stored envelope.

    Lives in the metadata index, never inside the envelope itself.
    """
    retrieval_id: str
    sender_address: str
    recipient_address: str
    filename: str
    file_size: int
    content_type: str = "application/octet-stream"
    created_at: str = ""
    status: str = STATUS_PENDING   # pending | signed

    def with_status(self, status: str) -> "DocumentMetadata":
        return replace(self, status=status)
