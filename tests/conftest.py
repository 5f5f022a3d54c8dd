import pytest
from dataclasses import dataclass
from eth_keys import keys

from filosign_core.storage import InMemoryStorage
from filosign_core.wallet import LocalAccountSigner


@dataclass
class Party:
    signer: LocalAccountSigner
    address: str
    private_key: bytes
    public_key: bytes   # 65-byte uncompressed point


def make_party(**kwargs) -> Party:
    signer = LocalAccountSigner(**kwargs)
    point = b"\x04" + keys.PrivateKey(signer.private_key).public_key.to_bytes()
    return Party(signer, signer.address, signer.private_key, point)


@pytest.fixture
def alice():
    return make_party()


@pytest.fixture
def bob():
    return make_party()


@pytest.fixture
def carol():
    return make_party()


@pytest.fixture
def store():
    return InMemoryStorage()
