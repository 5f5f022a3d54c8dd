# filosign_core/storage/provider.py
"""
Storage interfaces.

EnvelopeStore is the narrow key-value contract the core depends on.
StorageProvider adds the key cache, the metadata index and the audit log
that a local deployment keeps alongside the envelopes.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from filosign_core.envelope import EncryptedEnvelope
from filosign_core.errors import InvalidRetrievalId
from filosign_core.storage.models import DocumentMetadata, PublicKeyRecord
from filosign_core.utils import is_valid_retrieval_id


def require_retrieval_id(retrieval_id: str) -> str:
    if not is_valid_retrieval_id(retrieval_id):
        raise InvalidRetrievalId(retrieval_id)
    return retrieval_id


class EnvelopeStore:
    """
    Opaque blob store keyed by retrieval ID.

    get() raises EnvelopeNotFound for a missing ID and StoreUnavailable
    when the backend cannot answer. IDs are format-checked before any
    backend call.
    """

    def put(self, retrieval_id: str, envelope: EncryptedEnvelope) -> None:
        require_retrieval_id(retrieval_id)
        if envelope.retrieval_id != retrieval_id:
            raise ValueError(f"envelope {envelope.retrieval_id} stored under mismatched ID {retrieval_id}")
        self._put(retrieval_id, envelope)

    def get(self, retrieval_id: str) -> EncryptedEnvelope:
        return self._get(require_retrieval_id(retrieval_id))

    def exists(self, retrieval_id: str) -> bool:
        if not is_valid_retrieval_id(retrieval_id):
            return False
        return self._exists(retrieval_id)

    def delete(self, retrieval_id: str) -> None:
        self._delete(require_retrieval_id(retrieval_id))

    # Backend hooks
    def _put(self, retrieval_id: str, envelope: EncryptedEnvelope) -> None: raise NotImplementedError
    def _get(self, retrieval_id: str) -> EncryptedEnvelope: raise NotImplementedError
    def _exists(self, retrieval_id: str) -> bool: raise NotImplementedError
    def _delete(self, retrieval_id: str) -> None: raise NotImplementedError


class StorageProvider(EnvelopeStore):
    # Envelopes
    def list_retrieval_ids(self) -> List[str]: ...

    # Public key cache
    def upsert_key(self, rec: PublicKeyRecord) -> None: ...
    def get_key(self, address: str) -> Optional[PublicKeyRecord]: ...
    def delete_key(self, address: str) -> None: ...
    def list_key_addresses(self) -> List[str]: ...
    def clear_keys(self) -> None: ...

    # Metadata index
    def upsert_metadata(self, meta: DocumentMetadata) -> None: ...
    def get_metadata(self, retrieval_id: str) -> Optional[DocumentMetadata]: ...
    def list_metadata(self) -> List[DocumentMetadata]: ...
    def delete_metadata(self, retrieval_id: str) -> None: ...

    # Audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
