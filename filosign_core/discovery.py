"""
filosign_core.discovery
-----------------------
Key discovery: obtain a wallet's secp256k1 public key from a signature
over a canonical message, verify it against the wallet address and cache
it.

The private key never leaves the wallet. The recovered public key is
self-checking: hashing it back to an address must reproduce the address
it was requested for, both at discovery time and on every cache read.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import weakref
from typing import Callable, Dict, List, Optional

from .constants import DISCOVERY_MESSAGE_TITLE, KEY_EXPIRY_SECONDS
from .crypto import PublicKeyLike, load_public_key, public_key_bytes, public_key_to_address, recover_public_key
from .errors import KeyFormatError, KeyValidationError, SigningProviderError, UserCancelled
from .logger import get_logger
from .storage.models import PublicKeyRecord
from .storage.provider import StorageProvider
from .utils import normalize_address
from .wallet import SignFn, is_user_rejection

log = get_logger("FiloSign.Discovery")

Clock = Callable[[], float]


def _require_address(address: str) -> str:
    try:
        return normalize_address(address)
    except ValueError as e:
        raise KeyValidationError(str(e)) from e


class KeyDiscovery:
    """
    Public key discovery with a persistent, expiring cache.

    One instance per process, passed to whoever needs keys. The store
    holds the records; the clock decides expiry and timestamps the
    discovery message.

    Args:
        store: any StorageProvider (memory, SQLite, ...)
        clock: returns epoch seconds (default: time.time)
        expiry_seconds: record lifetime (default: 30 days)
    """

    def __init__(self, store: StorageProvider, clock: Clock = time.time,
                 expiry_seconds: float = KEY_EXPIRY_SECONDS):
        self._store = store
        self._clock = clock
        self._expiry = expiry_seconds
        # Per-loop, per-address locks so overlapping discoveries share one prompt.
        # asyncio.Lock binds to the loop that first waits on it.
        self._locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = (
            weakref.WeakKeyDictionary()
        )

    def _lock_for(self, address: str) -> asyncio.Lock:
        locks = self._locks.setdefault(asyncio.get_running_loop(), {})
        return locks.setdefault(address, asyncio.Lock())

    def discovery_message(self, address: str) -> str:
        timestamp_ms = int(self._clock() * 1000)
        return f"{DISCOVERY_MESSAGE_TITLE}\nAddress: {address}\nTimestamp: {timestamp_ms}"

    # =========================================================================
    # Discovery
    # =========================================================================

    async def discover_public_key(self, address: str, sign_fn: SignFn) -> PublicKeyRecord:
        """
        Return a verified public key record for ``address``, prompting the
        wallet through ``sign_fn`` only when no valid cached record exists.

        Raises:
            UserCancelled: the user declined the signature request
            SigningProviderError: the wallet failed for another reason
            SignatureRecoveryError: the signature is malformed
            KeyValidationError: the signature belongs to a different address
        """
        addr = _require_address(address)
        lock = self._lock_for(addr)

        async with lock:
            cached = self.get_public_key(addr)
            if cached is not None:
                log.debug(f"[DISCOVERY] cache hit {addr}")
                return cached

            message = self.discovery_message(addr)
            log.info(f"[DISCOVERY] requesting signature from {addr}")
            signature = await self._request_signature(addr, message, sign_fn)

            public_key = recover_public_key(message, signature)
            derived = public_key_to_address(public_key)
            if derived != addr:
                log.warning(f"[DISCOVERY] address mismatch requested={addr} derived={derived}")
                raise KeyValidationError(
                    f"Public key validation failed - derived address {derived} does not match {addr}"
                )

            rec = PublicKeyRecord(
                address=addr,
                public_key="0x" + public_key.hex(),
                discovered_at=self._clock(),
                verified=True,
            )
            self._store.upsert_key(rec)
            self._store.log_event("key_discovered", {"address": addr})
            log.info(f"[DISCOVERY] cached public key for {addr}")
            return rec

    async def _request_signature(self, address: str, message: str, sign_fn: SignFn):
        try:
            result = sign_fn(message)
            if inspect.isawaitable(result):
                result = await result
            return result
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise  # our caller is cancelling us, not the user
            log.info(f"[DISCOVERY] signature prompt dismissed by {address}")
            raise UserCancelled(address=address, operation="sign_message") from e
        except UserCancelled as e:
            if e.address is None:
                e.address = address
            if e.operation is None:
                e.operation = "sign_message"
            log.info(f"[DISCOVERY] signature rejected by {address}")
            raise
        except Exception as e:
            if is_user_rejection(e):
                log.info(f"[DISCOVERY] signature rejected by {address}")
                raise UserCancelled(str(e) or "user rejected the request",
                                    address=address, operation="sign_message") from e
            log.error(f"[DISCOVERY] signing provider failed for {address}: {e}")
            raise SigningProviderError(address, "sign_message", e) from e

    # =========================================================================
    # Cache
    # =========================================================================

    def get_public_key(self, address: str) -> Optional[PublicKeyRecord]:
        """
        Cached record for ``address``, or None.

        Expired records and records that fail self-verification are
        evicted by this call.
        """
        addr = _require_address(address)
        rec = self._store.get_key(addr)
        if rec is None:
            return None

        if rec.is_expired(self._clock(), self._expiry):
            log.info(f"[DISCOVERY] evicting expired key for {addr}")
            self._store.delete_key(addr)
            return None

        if not rec.verified or not self._self_consistent(rec):
            log.warning(f"[DISCOVERY] evicting unverifiable key for {addr}")
            self._store.delete_key(addr)
            return None

        return rec

    @staticmethod
    def _self_consistent(rec: PublicKeyRecord) -> bool:
        try:
            return public_key_to_address(rec.public_key) == rec.address
        except KeyFormatError:
            return False

    def cache_public_key(self, address: str, public_key: PublicKeyLike) -> PublicKeyRecord:
        """Store a key obtained out of band, after checking it hashes to ``address``."""
        addr = _require_address(address)
        point = public_key_bytes(load_public_key(public_key))
        if public_key_to_address(point) != addr:
            raise KeyValidationError(f"public key does not belong to {addr}")
        rec = PublicKeyRecord(addr, "0x" + point.hex(), self._clock(), True)
        self._store.upsert_key(rec)
        return rec

    def remove_cached_key(self, address: str) -> None:
        self._store.delete_key(_require_address(address))

    def clear_cache(self) -> None:
        self._store.clear_keys()

    def cached_addresses(self) -> List[str]:
        return self._store.list_key_addresses()

    def has_cached_key(self, address: str) -> bool:
        return self.get_public_key(address) is not None
