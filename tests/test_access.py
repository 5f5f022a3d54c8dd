import pytest

from filosign_core.access import REASON_DOC_AUTH, REASON_NO_SLOT, Role, check_access, holds_slot, resolve_access
from filosign_core.encryption import decrypt, encrypt
from filosign_core.envelope import EncryptedEnvelope
from filosign_core.errors import AccessDenied, KeyFormatError


def test_two_parties_read_third_party_denied(alice, bob, carol, caplog):
    env = encrypt(b"HELLO-DOC!", alice.public_key, bob.public_key)

    a = resolve_access(env, alice.private_key)
    assert a.granted and a.role is Role.PARTY_A and a.plaintext == b"HELLO-DOC!"

    b = resolve_access(env, bob.private_key)
    assert b.granted and b.role is Role.PARTY_B and b.plaintext == b"HELLO-DOC!"

    c = resolve_access(env, carol.private_key)
    assert not c.granted
    assert c.role is Role.NONE
    assert c.plaintext is None
    assert c.reason == REASON_NO_SLOT

    assert "[ACCESS]" in caplog.text


def test_roles_follow_slots_not_call_order(alice, bob):
    env = encrypt(b"x", bob.public_key, alice.public_key)
    assert resolve_access(env, alice.private_key).role is Role.PARTY_B
    assert resolve_access(env, bob.private_key).role is Role.PARTY_A


def test_same_key_in_both_slots_resolves_to_party_a(alice):
    env = encrypt(b"note to self", alice.public_key, alice.public_key)
    decision = resolve_access(env, alice.private_key)
    assert decision.role is Role.PARTY_A
    assert decision.plaintext == b"note to self"


def test_empty_and_large_documents(alice, bob):
    assert resolve_access(encrypt(b"", alice.public_key, bob.public_key), bob.private_key).plaintext == b""
    blob = bytes(range(256)) * 4096
    assert decrypt(encrypt(blob, alice.public_key, bob.public_key), alice.private_key) == blob


def test_hex_credentials(alice, bob):
    env = encrypt(b"hex", "0x" + alice.public_key.hex(), bob.public_key.hex())
    assert resolve_access(env, "0x" + bob.private_key.hex()).role is Role.PARTY_B


def test_check_access_does_not_decrypt(alice, bob, carol):
    env = encrypt(b"secret", alice.public_key, bob.public_key)
    decision = check_access(env, bob.private_key)
    assert decision.granted and decision.role is Role.PARTY_B
    assert decision.plaintext is None
    assert not check_access(env, carol.private_key).granted


def _flip_ciphertext_byte(env, index):
    flipped = bytearray(env.ciphertext)
    flipped[index] ^= 0x01
    return EncryptedEnvelope(bytes(flipped), env.wrapped_key_for_party_a,
                             env.wrapped_key_for_party_b, env.retrieval_id, env.created_at)


@pytest.mark.parametrize("index", [12, 15, -1], ids=["first-body-byte", "mid-body-byte", "tag-byte"])
def test_tampered_ciphertext_is_denied_for_both_parties(alice, bob, index):
    env = encrypt(b"HELLO-DOC!", alice.public_key, bob.public_key)
    tampered = _flip_ciphertext_byte(env, index)

    for party, role in ((alice, "partyA"), (bob, "partyB")):
        decision = resolve_access(tampered, party.private_key)
        assert not decision.granted
        assert decision.plaintext is None
        assert decision.reason == REASON_DOC_AUTH
        # the untouched envelope still opens for the same key
        assert resolve_access(env, party.private_key).role.value == role


def test_tampered_key_slot_is_denied(alice, bob):
    env = encrypt(b"HELLO-DOC!", alice.public_key, bob.public_key)
    slot = bytearray(env.wrapped_key_for_party_a)
    slot[80] ^= 0xFF
    tampered = EncryptedEnvelope(env.ciphertext, bytes(slot), env.wrapped_key_for_party_b,
                                 env.retrieval_id, env.created_at)

    assert not resolve_access(tampered, alice.private_key).granted
    assert resolve_access(tampered, bob.private_key).plaintext == b"HELLO-DOC!"


def test_each_encryption_is_fresh(alice, bob):
    e1 = encrypt(b"same", alice.public_key, bob.public_key)
    e2 = encrypt(b"same", alice.public_key, bob.public_key)
    assert e1.retrieval_id != e2.retrieval_id
    assert e1.ciphertext != e2.ciphertext
    assert e1.wrapped_key_for_party_a != e2.wrapped_key_for_party_a


def test_decrypt_raises_for_outsider(alice, bob, carol):
    env = encrypt(b"x", alice.public_key, bob.public_key)
    with pytest.raises(AccessDenied):
        decrypt(env, carol.private_key)


def test_malformed_credential_is_an_error_not_a_denial(alice, bob):
    env = encrypt(b"x", alice.public_key, bob.public_key)
    with pytest.raises(KeyFormatError):
        resolve_access(env, b"short")


def test_encrypt_rejects_bad_input(alice):
    with pytest.raises(KeyFormatError):
        encrypt(b"x", alice.public_key, b"\x04" + b"\x00" * 64)
    with pytest.raises(TypeError):
        encrypt("text", alice.public_key, alice.public_key)


def test_holds_slot_sees_both_slots_of_one_key(alice, bob, carol):
    shared = encrypt(b"x", alice.public_key, alice.public_key)
    assert holds_slot(shared, alice.private_key, Role.PARTY_A)
    assert holds_slot(shared, alice.private_key, Role.PARTY_B)

    env = encrypt(b"x", alice.public_key, bob.public_key)
    assert holds_slot(env, alice.private_key, Role.PARTY_A)
    assert not holds_slot(env, alice.private_key, Role.PARTY_B)
    assert not holds_slot(env, carol.private_key, Role.PARTY_B)
    with pytest.raises(ValueError):
        holds_slot(env, alice.private_key, Role.NONE)
