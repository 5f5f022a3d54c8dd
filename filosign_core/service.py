"""
filosign_core.service
---------------------
Document workflow on top of the core: send, receive, sign and list.

The sender is always party A and the recipient party B. Who sent what to
whom is recorded only in the metadata index of the StorageProvider; the
envelope stays anonymous. Signing is gated by the access resolver, never
by comparing stored addresses.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import os

from .access import AccessDecision, Role, check_access, holds_slot, resolve_access
from .constants import STATUS_SIGNED
from .crypto import PrivateKeyLike
from .discovery import KeyDiscovery
from .encryption import encrypt
from .errors import EnvelopeNotFound, KeyValidationError, PublicKeyUnavailable
from .logger import get_logger
from .storage.models import DocumentMetadata
from .storage.provider import EnvelopeStore, StorageProvider
from .utils import format_bytes, normalize_address

log = get_logger("FiloSign.Service")

MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}


def content_type_for(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    return MIME_TYPES.get(ext, "application/octet-stream")


@dataclass(frozen=True)
class ReceivedDocument:
    decision: AccessDecision
    metadata: Optional[DocumentMetadata] = None

    @property
    def granted(self) -> bool:
        return self.decision.granted

    @property
    def content(self) -> Optional[bytes]:
        return self.decision.plaintext


class DocumentService:
    def __init__(self, discovery: KeyDiscovery, store: StorageProvider,
                 envelopes: Optional[EnvelopeStore] = None):
        self.discovery = discovery
        self.store = store
        self.envelopes = envelopes if envelopes is not None else store

    def _party(self, address: str, party: str) -> str:
        try:
            return normalize_address(address)
        except ValueError as e:
            raise KeyValidationError(f"{party} address is invalid: {e}") from e

    def send_document(self, data: bytes, filename: str, sender_address: str,
                      recipient_address: str) -> DocumentMetadata:
        """
        Encrypt ``data`` for sender and recipient and store it.

        Both parties must have completed key discovery; otherwise
        PublicKeyUnavailable names the missing party.
        """
        sender = self._party(sender_address, "Sender")
        recipient = self._party(recipient_address, "Recipient")

        sender_key = self.discovery.get_public_key(sender)
        if sender_key is None:
            raise PublicKeyUnavailable(sender, "Sender")
        recipient_key = self.discovery.get_public_key(recipient)
        if recipient_key is None:
            raise PublicKeyUnavailable(recipient, "Recipient")

        env = encrypt(data, sender_key.public_key, recipient_key.public_key)
        self.envelopes.put(env.retrieval_id, env)

        meta = DocumentMetadata(
            retrieval_id=env.retrieval_id,
            sender_address=sender,
            recipient_address=recipient,
            filename=filename,
            file_size=len(data),
            content_type=content_type_for(filename),
            created_at=env.created_at,
        )
        try:
            self.store.upsert_metadata(meta)
        except Exception as e:
            # No envelope without an index entry
            log.error(f"[SEND] {env.retrieval_id} index write failed, removing envelope: {e}")
            self.envelopes.delete(env.retrieval_id)
            raise
        self.store.log_event("document_sent", {"retrieval_id": env.retrieval_id, "size": len(data)})
        log.info(f"[SEND] {env.retrieval_id} stored | {sender} -> {recipient}")
        return meta

    def receive_document(self, retrieval_id: str, private_key: PrivateKeyLike) -> ReceivedDocument:
        """
        Fetch and open a document. Raises InvalidRetrievalId / EnvelopeNotFound /
        StoreUnavailable from the store; an unauthorized key yields
        ``granted=False``.
        """
        env = self.envelopes.get(retrieval_id)
        decision = resolve_access(env, private_key)
        self.store.log_event("document_access", {
            "retrieval_id": retrieval_id,
            "granted": decision.granted,
            "role": decision.role.value,
        })
        return ReceivedDocument(decision=decision, metadata=self.store.get_metadata(retrieval_id))

    def sign_document(self, retrieval_id: str, private_key: PrivateKeyLike) -> bool:
        """Mark a document signed. Only the recipient (party B) may sign."""
        env = self.envelopes.get(retrieval_id)
        decision = check_access(env, private_key)
        # A self-addressed document wraps one key into both slots; check_access stops at A
        is_recipient = decision.role is Role.PARTY_B or (
            decision.role is Role.PARTY_A and holds_slot(env, private_key, Role.PARTY_B)
        )
        if not is_recipient:
            log.info(f"[SIGN] {retrieval_id} refused | role={decision.role.value}")
            return False

        meta = self.store.get_metadata(retrieval_id)
        if meta is None:
            # Envelope exists but was stored without an index entry
            log.warning(f"[SIGN] {retrieval_id} has no metadata entry")
            return False

        self.store.upsert_metadata(meta.with_status(STATUS_SIGNED))
        self.store.log_event("document_signed", {"retrieval_id": retrieval_id})
        log.info(f"[SIGN] {retrieval_id} signed")
        return True

    # --- Listing ---

    def documents_for_user(self, address: str) -> List[DocumentMetadata]:
        addr = self._party(address, "User")
        return [m for m in self.store.list_metadata() if addr in (m.sender_address, m.recipient_address)]

    def sent_documents(self, address: str) -> List[DocumentMetadata]:
        addr = self._party(address, "Sender")
        return [m for m in self.store.list_metadata() if m.sender_address == addr]

    def received_documents(self, address: str) -> List[DocumentMetadata]:
        addr = self._party(address, "Recipient")
        return [m for m in self.store.list_metadata() if m.recipient_address == addr]

    def document_exists(self, retrieval_id: str) -> bool:
        return self.envelopes.exists(retrieval_id)

    def delete_document(self, retrieval_id: str) -> None:
        if not self.envelopes.exists(retrieval_id):
            raise EnvelopeNotFound(retrieval_id)
        self.envelopes.delete(retrieval_id)
        self.store.delete_metadata(retrieval_id)
        self.store.log_event("document_deleted", {"retrieval_id": retrieval_id})
        log.info(f"[DELETE] {retrieval_id}")

    def storage_stats(self) -> Dict[str, Any]:
        metadata = self.store.list_metadata()
        total_size = sum(m.file_size for m in metadata)
        return {
            "total_documents": len(metadata),
            "total_size": total_size,
            "storage_used": format_bytes(total_size),
        }
