"""
filosign_core.utils
-------------------
Lightweight helpers for timestamps, base64, hex and address handling,
and retrieval ID generation.
"""

from __future__ import annotations
import base64, re, secrets, string, time
from typing import Any

from .constants import RETRIEVAL_ID_LENGTH, RETRIEVAL_ID_PATTERN, RETRIEVAL_ID_PREFIX

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
_RETRIEVAL_ID_RE = re.compile(RETRIEVAL_ID_PATTERN)
_ALPHANUMERIC = string.ascii_letters + string.digits


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def strip_0x(s: str) -> str:
    return s[2:] if s[:2] in ("0x", "0X") else s

def hex_to_bytes(s: str) -> bytes:
    """Decode hex with or without a 0x prefix. Raises ValueError."""
    return bytes.fromhex(strip_0x(s.strip()))

def normalize_address(address: str) -> str:
    """Lowercase an account address; raises ValueError when it is not 0x + 40 hex chars."""
    if not isinstance(address, str):
        raise ValueError("address must be a string")
    addr = address.strip().lower()
    if not _ADDRESS_RE.match(addr):
        raise ValueError(f"invalid account address: {address!r}")
    return addr

def new_retrieval_id() -> str:
    suffix = "".join(secrets.choice(_ALPHANUMERIC) for _ in range(RETRIEVAL_ID_LENGTH))
    return RETRIEVAL_ID_PREFIX + suffix

def is_valid_retrieval_id(retrieval_id: Any) -> bool:
    return isinstance(retrieval_id, str) and _RETRIEVAL_ID_RE.match(retrieval_id) is not None

def format_bytes(n: int) -> str:
    if n <= 0:
        return "0 B"
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            break
        size /= 1024
    return f"{round(size, 2):g} {unit}"
