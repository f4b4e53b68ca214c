import pytest

from cipherkit.eax import AuthenticationError, Eax
from cipherkit.kuznyechik import Kuznyechik

VECTOR_KEY = bytes.fromhex(
    "8899aabbccddeeff0011223344556677fedcba98765432100123456789abcdef"
)
VECTOR_PLAIN = bytes.fromhex("1122334455667700ffeeddccbbaa9988")
VECTOR_CIPHER = bytes.fromhex("7f679d90bebc24305a468d42b9d4edcd")


def test_standard_vector_encrypt():
    assert Kuznyechik(VECTOR_KEY).encrypt_block(VECTOR_PLAIN) == VECTOR_CIPHER


def test_standard_vector_decrypt():
    assert Kuznyechik(VECTOR_KEY).decrypt_block(VECTOR_CIPHER) == VECTOR_PLAIN


@pytest.mark.parametrize("seed", [0, 1, 7, 200])
def test_round_trip(seed):
    cipher = Kuznyechik(bytes((seed + i) & 0xFF for i in range(32)))
    block = bytes((seed * 3 + i * 11) & 0xFF for i in range(16))
    encrypted = cipher.encrypt_block(block)
    assert encrypted != block
    assert cipher.decrypt_block(encrypted) == block


def test_different_keys_differ():
    block = bytes(16)
    first = Kuznyechik(bytes(32)).encrypt_block(block)
    second = Kuznyechik(b"\x01" + bytes(31)).encrypt_block(block)
    assert first != second


def test_encryption_is_a_permutation_on_samples():
    cipher = Kuznyechik(VECTOR_KEY)
    outputs = {cipher.encrypt_block(i.to_bytes(16, "big")) for i in range(64)}
    assert len(outputs) == 64


@pytest.mark.parametrize("length", [0, 16, 31, 33])
def test_bad_key_length(length):
    with pytest.raises(ValueError):
        Kuznyechik(bytes(length))


@pytest.mark.parametrize("length", [0, 15, 17])
def test_bad_block_length(length):
    cipher = Kuznyechik(VECTOR_KEY)
    with pytest.raises(ValueError):
        cipher.encrypt_block(bytes(length))
    with pytest.raises(ValueError):
        cipher.decrypt_block(bytes(length))


def test_eax_over_kuznyechik():
    eax = Eax(Kuznyechik(VECTOR_KEY).encrypt_block, Kuznyechik.block_size)
    nonce = bytes(range(16))
    message = b"file contents to protect"
    sealed = eax.encrypt(nonce, message)
    assert len(sealed) == len(message) + 16
    assert eax.decrypt(nonce, sealed) == message
    with pytest.raises(AuthenticationError):
        eax.decrypt(nonce, sealed[:-1] + bytes([sealed[-1] ^ 0xFF]))