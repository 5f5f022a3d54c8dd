from typing import Optional, Dict, Any, List
from filosign_core.envelope import EncryptedEnvelope
from filosign_core.errors import EnvelopeNotFound
from filosign_core.storage.models import DocumentMetadata, PublicKeyRecord
from filosign_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.envelopes: Dict[str, EncryptedEnvelope] = {}
        self.keys: Dict[str, PublicKeyRecord] = {}
        self.metadata: Dict[str, DocumentMetadata] = {}
        self.audit = []

    # envelopes
    def _put(self, retrieval_id: str, envelope: EncryptedEnvelope):
        if retrieval_id in self.envelopes:
            raise ValueError(f"retrieval ID already in use: {retrieval_id}")
        self.envelopes[retrieval_id] = envelope

    def _get(self, retrieval_id: str) -> EncryptedEnvelope:
        env = self.envelopes.get(retrieval_id)
        if env is None:
            raise EnvelopeNotFound(retrieval_id)
        return env

    def _exists(self, retrieval_id: str) -> bool:
        return retrieval_id in self.envelopes

    def _delete(self, retrieval_id: str):
        self.envelopes.pop(retrieval_id, None)

    def list_retrieval_ids(self) -> List[str]:
        return list(self.envelopes)

    # key cache
    def upsert_key(self, rec: PublicKeyRecord):
        self.keys[rec.address] = rec

    def get_key(self, address: str) -> Optional[PublicKeyRecord]:
        return self.keys.get(address)

    def delete_key(self, address: str):
        self.keys.pop(address, None)

    def list_key_addresses(self) -> List[str]:
        return list(self.keys)

    def clear_keys(self):
        self.keys.clear()

    # metadata index
    def upsert_metadata(self, meta: DocumentMetadata):
        self.metadata[meta.retrieval_id] = meta

    def get_metadata(self, retrieval_id: str) -> Optional[DocumentMetadata]:
        return self.metadata.get(retrieval_id)

    def list_metadata(self) -> List[DocumentMetadata]:
        return list(self.metadata.values())

    def delete_metadata(self, retrieval_id: str):
        self.metadata.pop(retrieval_id, None)

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        self.audit.append((event_type, payload))
