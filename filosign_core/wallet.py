"""
filosign_core.wallet
--------------------
The narrow wallet interface FiloSign depends on, plus a local-account
implementation for scripts, services and tests.

Browser wallets (MetaMask, WalletConnect) live in the host application;
they only need to expose ``get_address()`` and ``sign_message()``. A user
rejecting the prompt must surface as ``UserCancelled``; EIP-1193 providers
report it as error code 4001, which ``is_user_rejection`` recognises.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_defunct

from .errors import UserCancelled
from .utils import normalize_address

EIP1193_USER_REJECTED = 4001

Signature = Union[bytes, str]
SignFn = Callable[[str], Union[Signature, Awaitable[Signature]]]


@runtime_checkable
class SigningProvider(Protocol):
    # sign_message may be sync or async
    def get_address(self) -> str: ...
    def sign_message(self, message: str) -> Any: ...


def is_user_rejection(exc: BaseException) -> bool:
    """True for UserCancelled and for provider errors carrying EIP-1193 code 4001."""
    if isinstance(exc, UserCancelled):
        return True
    return getattr(exc, "code", None) == EIP1193_USER_REJECTED


class LocalAccountSigner:
    """
    SigningProvider backed by an in-process secp256k1 key.

    ``approve`` is consulted before every signature; returning False
    simulates the user dismissing the wallet prompt.
    """

    def __init__(self, private_key: Union[bytes, str, None] = None,
                 approve: Optional[Callable[[str], bool]] = None):
        self._account = Account.from_key(private_key) if private_key is not None else Account.create()
        self._approve = approve
        self.sign_count = 0

    @property
    def address(self) -> str:
        return normalize_address(self._account.address)

    @property
    def private_key(self) -> bytes:
        return bytes(self._account.key)

    def get_address(self) -> str:
        return self.address

    async def sign_message(self, message: str) -> bytes:
        if self._approve is not None and not self._approve(message):
            raise UserCancelled(address=self.address, operation="sign_message")
        self.sign_count += 1
        signed = Account.sign_message(encode_defunct(text=message), private_key=self._account.key)
        return bytes(signed.signature)
