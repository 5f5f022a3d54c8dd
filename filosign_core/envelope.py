"""
filosign_core.envelope
----------------------
Defines EncryptedEnvelope, the unit FiloSign persists and exchanges.

An envelope carries the document ciphertext and two wrapped copies of the
document key. It is deliberately anonymous: no address, role label or
filename is stored, so a reader learns which slot is theirs only by
successfully unwrapping it.

Wire format: a JSON object with exactly the dataclass fields, binary
fields base64-encoded.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict
import binascii
import json

from .errors import EnvelopeFormatError, InvalidRetrievalId
from .utils import b64d, b64e, is_valid_retrieval_id, new_retrieval_id, now_ts

BINARY_FIELDS = ("ciphertext", "wrapped_key_for_party_a", "wrapped_key_for_party_b")


@dataclass(frozen=True)
class EncryptedEnvelope:
    ciphertext: bytes                   # nonce(12) || AES-GCM ciphertext || tag
    wrapped_key_for_party_a: bytes      # ECIES blob
    wrapped_key_for_party_b: bytes      # ECIES blob
    retrieval_id: str = field(default_factory=new_retrieval_id)
    created_at: str = field(default_factory=now_ts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": b64e(self.ciphertext),
            "wrapped_key_for_party_a": b64e(self.wrapped_key_for_party_a),
            "wrapped_key_for_party_b": b64e(self.wrapped_key_for_party_b),
            "retrieval_id": self.retrieval_id,
            "created_at": self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def to_json_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedEnvelope":
        """Inverse of to_dict. Raises EnvelopeFormatError on any structural problem."""
        if not isinstance(data, dict):
            raise EnvelopeFormatError("envelope must be a JSON object")
        expected = {f.name for f in fields(cls)}
        missing = expected - data.keys()
        if missing:
            raise EnvelopeFormatError(f"envelope is missing fields: {sorted(missing)}")
        unknown = data.keys() - expected
        if unknown:
            raise EnvelopeFormatError(f"envelope has unexpected fields: {sorted(unknown)}")

        decoded = {}
        for name in BINARY_FIELDS:
            value = data[name]
            if not isinstance(value, str):
                raise EnvelopeFormatError(f"{name} must be a base64 string")
            try:
                decoded[name] = b64d(value)
            except (binascii.Error, ValueError) as e:
                raise EnvelopeFormatError(f"{name} is not valid base64") from e

        if not is_valid_retrieval_id(data["retrieval_id"]):
            raise InvalidRetrievalId(data["retrieval_id"])
        if not isinstance(data["created_at"], str):
            raise EnvelopeFormatError("created_at must be a timestamp string")

        return cls(
            retrieval_id=data["retrieval_id"],
            created_at=data["created_at"],
            **decoded,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "EncryptedEnvelope":
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise EnvelopeFormatError("envelope is not valid JSON") from e
        return cls.from_dict(data)
