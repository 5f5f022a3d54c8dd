# filosign_core/storage/__init__.py

from .models import DocumentMetadata, PublicKeyRecord
from .provider import EnvelopeStore, StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
from .providers.http_provider import HTTPEnvelopeStore
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for the local storage backend (envelopes, key cache,
    metadata index, audit):
        - sqlite (default)
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("FILOSIGN_STORAGE_PROVIDER", "sqlite")

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("FILOSIGN_DB_PATH", "db/filosign.db")
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


def load_envelope_store(config: dict | None = None) -> EnvelopeStore:
    """
    Like load_storage_provider, but also accepts "http" for a remote blob
    service at config["url"] / FILOSIGN_STORE_URL.
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("FILOSIGN_STORAGE_PROVIDER", "sqlite")

    if provider == "http":
        url = config.get("url") or os.getenv("FILOSIGN_STORE_URL")
        if not url:
            raise ValueError("http envelope store requires a URL (FILOSIGN_STORE_URL)")
        return HTTPEnvelopeStore(url, token=config.get("token") or os.getenv("FILOSIGN_STORE_TOKEN"))

    return load_storage_provider(config)


__all__ = [
    "PublicKeyRecord",
    "DocumentMetadata",
    "EnvelopeStore",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "HTTPEnvelopeStore",
    "load_storage_provider",
    "load_envelope_store",
]
