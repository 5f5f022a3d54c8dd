"""
filosign_core.errors
--------------------
The closed set of failures raised by FiloSign.

Access denial is not an error: the resolver reports it as
``AccessDecision(granted=False)``. ``AccessDenied`` exists only for the
``decrypt()`` convenience, which has no other way to say "no".
"""

from __future__ import annotations
from typing import Optional


class FiloSignError(Exception):
    """Base class for every FiloSign failure."""


# --------- Wallet / key discovery ----------
class UserCancelled(FiloSignError):
    """The user declined or dismissed a signing prompt. Safe to retry."""

    def __init__(self, message: str = "signature request cancelled by user",
                 address: Optional[str] = None, operation: Optional[str] = None):
        self.address = address
        self.operation = operation
        super().__init__(message)


class SigningProviderError(FiloSignError):
    """The signing provider failed for a reason other than user cancellation."""

    def __init__(self, address: str, operation: str, cause: BaseException):
        self.address = address
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed for {address}: {cause}")


class KeyValidationError(FiloSignError):
    """Recovered key does not belong to the requested address (or the address is malformed)."""


class SignatureRecoveryError(FiloSignError):
    """Signature is malformed or no public key can be recovered from it."""


# --------- Cryptography ----------
class KeyFormatError(FiloSignError, ValueError):
    """A public or private key could not be parsed."""


class EncryptionError(FiloSignError):
    """Unexpected failure inside a cryptographic primitive."""


class AccessDenied(FiloSignError):
    """The credential matches neither key slot of the envelope."""


# --------- Envelopes / storage ----------
class EnvelopeFormatError(FiloSignError, ValueError):
    """Serialized envelope is missing fields or carries undecodable data."""


class InvalidRetrievalId(FiloSignError, ValueError):
    def __init__(self, retrieval_id):
        self.retrieval_id = retrieval_id
        super().__init__(f"Invalid retrieval ID format: {retrieval_id!r}")


class EnvelopeNotFound(FiloSignError, KeyError):
    def __init__(self, retrieval_id: str):
        self.retrieval_id = retrieval_id
        super().__init__(f"Document not found. Please check the retrieval ID: {retrieval_id}")

    def __str__(self) -> str:
        return self.args[0]


class StoreUnavailable(FiloSignError):
    """The envelope store could not be reached or failed internally."""


class PublicKeyUnavailable(FiloSignError):
    """No discovered public key is cached for an address."""

    def __init__(self, address: str, party: str):
        self.address = address
        self.party = party
        super().__init__(
            f"{party} public key not found for {address}. "
            f"The {party.lower()} must connect their wallet and complete key discovery."
        )
