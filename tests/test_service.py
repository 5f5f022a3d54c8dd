import asyncio
import pytest

from filosign_core.access import Role
from filosign_core.discovery import KeyDiscovery
from filosign_core.errors import EnvelopeNotFound, InvalidRetrievalId, PublicKeyUnavailable, StoreUnavailable
from filosign_core.service import DocumentService, content_type_for
from filosign_core.storage import InMemoryStorage, SQLiteStorage


@pytest.fixture
def discovery(store, alice, bob):
    kd = KeyDiscovery(store)

    async def connect_wallets():
        for party in (alice, bob):
            await kd.discover_public_key(party.address, party.signer.sign_message)

    asyncio.run(connect_wallets())
    return kd


@pytest.fixture
def service(discovery, store):
    return DocumentService(discovery, store)


def test_send_and_receive(service, store, alice, bob, carol):
    meta = service.send_document(b"HELLO-DOC!", "contract.pdf", alice.address, bob.address)
    assert meta.status == "pending"
    assert meta.content_type == "application/pdf"
    assert meta.file_size == 10
    assert service.document_exists(meta.retrieval_id)

    received = service.receive_document(meta.retrieval_id, bob.private_key)
    assert received.granted
    assert received.content == b"HELLO-DOC!"
    assert received.decision.role is Role.PARTY_B
    assert received.metadata == meta

    assert service.receive_document(meta.retrieval_id, alice.private_key).decision.role is Role.PARTY_A

    outsider = service.receive_document(meta.retrieval_id, carol.private_key)
    assert not outsider.granted
    assert outsider.content is None

    events = [e for e, _ in store.audit]
    assert events.count("document_access") == 3


def test_only_recipient_can_sign(service, store, alice, bob, carol):
    meta = service.send_document(b"terms", "terms.txt", alice.address, bob.address)

    assert service.sign_document(meta.retrieval_id, alice.private_key) is False
    assert service.sign_document(meta.retrieval_id, carol.private_key) is False
    assert store.get_metadata(meta.retrieval_id).status == "pending"

    assert service.sign_document(meta.retrieval_id, bob.private_key) is True
    assert store.get_metadata(meta.retrieval_id).status == "signed"


def test_send_requires_discovered_keys(service, alice, carol):
    with pytest.raises(PublicKeyUnavailable) as exc:
        service.send_document(b"x", "x.txt", alice.address, carol.address)
    assert exc.value.party == "Recipient"
    assert "Recipient public key not found" in str(exc.value)

    with pytest.raises(PublicKeyUnavailable) as exc:
        service.send_document(b"x", "x.txt", carol.address, alice.address)
    assert exc.value.party == "Sender"


def test_listing(service, alice, bob):
    to_bob = service.send_document(b"1", "a.docx", alice.address, bob.address)
    to_alice = service.send_document(b"22", "b.png", bob.address, alice.address)

    assert {m.retrieval_id for m in service.documents_for_user(alice.address)} == \
        {to_bob.retrieval_id, to_alice.retrieval_id}
    assert service.sent_documents(alice.address) == [to_bob]
    assert service.received_documents(alice.address.upper().replace("0X", "0x")) == [to_alice]


def test_storage_stats_and_delete(service, alice, bob):
    assert service.storage_stats() == {"total_documents": 0, "total_size": 0, "storage_used": "0 B"}

    meta = service.send_document(b"\x00" * 1536, "scan.jpg", alice.address, bob.address)
    assert service.storage_stats() == {"total_documents": 1, "total_size": 1536, "storage_used": "1.5 KB"}

    service.delete_document(meta.retrieval_id)
    assert not service.document_exists(meta.retrieval_id)
    assert service.storage_stats()["total_documents"] == 0
    with pytest.raises(EnvelopeNotFound):
        service.delete_document(meta.retrieval_id)
    with pytest.raises(EnvelopeNotFound):
        service.receive_document(meta.retrieval_id, bob.private_key)


def test_receive_bad_retrieval_id(service, bob):
    with pytest.raises(InvalidRetrievalId):
        service.receive_document("FS-not-valid", bob.private_key)
    assert service.document_exists("FS-not-valid") is False


def test_separate_envelope_store(discovery, store, tmp_path, alice, bob):
    blobs = SQLiteStorage(str(tmp_path / "blobs.db"))
    service = DocumentService(discovery, store, envelopes=blobs)

    meta = service.send_document(b"split", "split.txt", alice.address, bob.address)
    assert blobs.exists(meta.retrieval_id)
    assert not store.exists(meta.retrieval_id)
    assert store.get_metadata(meta.retrieval_id) == meta
    assert service.receive_document(meta.retrieval_id, bob.private_key).content == b"split"


@pytest.mark.parametrize("filename,expected", [
    ("report.PDF", "application/pdf"),
    ("notes.txt", "text/plain"),
    ("photo.jpeg", "image/jpeg"),
    ("archive.tar.gz", "application/octet-stream"),
    ("README", "application/octet-stream"),
])
def test_content_type_for(filename, expected):
    assert content_type_for(filename) == expected


def test_self_addressed_document_can_be_signed(service, store, alice, caplog):
    meta = service.send_document(b"note", "n.txt", alice.address, alice.address)
    assert service.receive_document(meta.retrieval_id, alice.private_key).content == b"note"

    assert service.sign_document(meta.retrieval_id, alice.private_key) is True
    assert store.get_metadata(meta.retrieval_id).status == "signed"
    assert "[SIGN]" in caplog.text


class BrokenIndex(InMemoryStorage):
    def upsert_metadata(self, meta):
        raise StoreUnavailable("metadata index is read-only")


def test_failed_index_write_removes_envelope(alice, bob):
    store = BrokenIndex()
    kd = KeyDiscovery(store)
    kd.cache_public_key(alice.address, alice.public_key)
    kd.cache_public_key(bob.address, bob.public_key)
    service = DocumentService(kd, store)

    with pytest.raises(StoreUnavailable):
        service.send_document(b"orphan", "o.txt", alice.address, bob.address)
    assert store.envelopes == {}
    assert not any(event == "document_sent" for event, _ in store.audit)
