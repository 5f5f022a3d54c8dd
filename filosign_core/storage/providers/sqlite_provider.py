from __future__ import annotations
from typing import Optional, Dict, Any, List
import json, sqlite3, os
from filosign_core.envelope import EncryptedEnvelope
from filosign_core.errors import EnvelopeNotFound, StoreUnavailable
from filosign_core.logger import get_logger
from filosign_core.storage.provider import StorageProvider
from filosign_core.storage.models import DocumentMetadata, PublicKeyRecord
from filosign_core.utils import now_ts

log = get_logger("FiloSign.Storage.SQLite")

_META_COLUMNS = "retrieval_id,sender_address,recipient_address,filename,file_size,content_type,created_at,status"


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/filosign.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)

        self._init()

    def execute(self, sql: str, params: tuple = ()):
        """Run a statement, translating driver failures into StoreUnavailable."""
        try:
            return self.db.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            log.error(f"[SQLITE] {e} | sql={sql.split('(')[0].strip()}")
            raise StoreUnavailable(f"sqlite store at {self.path} failed: {e}") from e

    def _init(self) -> None:
        c = self.db.cursor()

        c.execute("""CREATE TABLE IF NOT EXISTS envelopes(
            retrieval_id TEXT PRIMARY KEY,
            body TEXT NOT NULL,
            created_at TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS keyring(
            address TEXT PRIMARY KEY,
            public_key TEXT NOT NULL,
            discovered_at REAL NOT NULL,
            verified INTEGER NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS documents(
            retrieval_id TEXT PRIMARY KEY,
            sender_address TEXT NOT NULL,
            recipient_address TEXT NOT NULL,
            filename TEXT NOT NULL,
            file_size INTEGER NOT NULL,
            content_type TEXT,
            created_at TEXT,
            status TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")

        self.db.commit()

    # --- Envelopes ---

    def _put(self, retrieval_id: str, envelope: EncryptedEnvelope) -> None:
        try:
            self.execute(
                "INSERT INTO envelopes(retrieval_id,body,created_at) VALUES(?,?,?)",
                (retrieval_id, envelope.to_json(), envelope.created_at),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"retrieval ID already in use: {retrieval_id}") from e
        self.db.commit()

    def _get(self, retrieval_id: str) -> EncryptedEnvelope:
        row = self.execute("SELECT body FROM envelopes WHERE retrieval_id=?", (retrieval_id,)).fetchone()
        if not row:
            raise EnvelopeNotFound(retrieval_id)
        return EncryptedEnvelope.from_json(row[0])

    def _exists(self, retrieval_id: str) -> bool:
        return self.execute("SELECT 1 FROM envelopes WHERE retrieval_id=?", (retrieval_id,)).fetchone() is not None

    def _delete(self, retrieval_id: str) -> None:
        self.execute("DELETE FROM envelopes WHERE retrieval_id=?", (retrieval_id,))
        self.db.commit()

    def list_retrieval_ids(self) -> List[str]:
        return [r[0] for r in self.execute("SELECT retrieval_id FROM envelopes ORDER BY created_at").fetchall()]

    # --- Key cache ---

    def upsert_key(self, rec: PublicKeyRecord) -> None:
        self.execute(
            "INSERT INTO keyring(address,public_key,discovered_at,verified) VALUES(?,?,?,?) "
            "ON CONFLICT(address) DO UPDATE SET public_key=excluded.public_key, "
            "discovered_at=excluded.discovered_at, verified=excluded.verified",
            (rec.address, rec.public_key, rec.discovered_at, int(rec.verified)),
        )
        self.db.commit()

    def get_key(self, address: str) -> Optional[PublicKeyRecord]:
        row = self.execute(
            "SELECT address,public_key,discovered_at,verified FROM keyring WHERE address=?", (address,)
        ).fetchone()
        if not row: return None
        addr, public_key, discovered_at, verified = row
        return PublicKeyRecord(addr, public_key, float(discovered_at), bool(verified))

    def delete_key(self, address: str) -> None:
        self.execute("DELETE FROM keyring WHERE address=?", (address,))
        self.db.commit()

    def list_key_addresses(self) -> List[str]:
        return [r[0] for r in self.execute("SELECT address FROM keyring").fetchall()]

    def clear_keys(self) -> None:
        self.execute("DELETE FROM keyring")
        self.db.commit()

    # --- Metadata index ---

    def upsert_metadata(self, meta: DocumentMetadata) -> None:
        self.execute(
            f"INSERT INTO documents({_META_COLUMNS}) VALUES(?,?,?,?,?,?,?,?) "
            "ON CONFLICT(retrieval_id) DO UPDATE SET sender_address=excluded.sender_address, "
            "recipient_address=excluded.recipient_address, filename=excluded.filename, "
            "file_size=excluded.file_size, content_type=excluded.content_type, "
            "created_at=excluded.created_at, status=excluded.status",
            (meta.retrieval_id, meta.sender_address, meta.recipient_address, meta.filename,
             meta.file_size, meta.content_type, meta.created_at, meta.status),
        )
        self.db.commit()

    def get_metadata(self, retrieval_id: str) -> Optional[DocumentMetadata]:
        row = self.execute(f"SELECT {_META_COLUMNS} FROM documents WHERE retrieval_id=?", (retrieval_id,)).fetchone()
        return DocumentMetadata(*row) if row else None

    def list_metadata(self) -> List[DocumentMetadata]:
        cur = self.execute(f"SELECT {_META_COLUMNS} FROM documents ORDER BY created_at")
        return [DocumentMetadata(*r) for r in cur.fetchall()]

    def delete_metadata(self, retrieval_id: str) -> None:
        self.execute("DELETE FROM documents WHERE retrieval_id=?", (retrieval_id,))
        self.db.commit()

    # --- Audit ---

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                     (now_ts(), event_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)))
        self.db.commit()

    def close(self):
        self.db.close()
