import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cipherkit.eax import AuthenticationError, Eax
from cipherkit.toy_block import feistel_encrypt_block, feistel_subkeys


def _aes_eax(key_bytes: bytes) -> Eax:
    encryptor = Cipher(algorithms.AES(key_bytes), modes.ECB()).encryptor()
    return Eax(encryptor.update, 16)


@pytest.fixture
def aes_eax() -> Eax:
    return _aes_eax(bytes(range(16)))


def test_paper_vector_empty_message():
    eax = _aes_eax(bytes.fromhex("233952DEE4D5ED5F9B9C6D6FF80FF478"))
    nonce = bytes.fromhex("62EC67F9C3A4A407FCB2A8C49031A8B3")
    header = bytes.fromhex("6BFB914FD07EAE6B")
    result = eax.encrypt(nonce, b"", header)
    assert result == bytes.fromhex("E037830E8389F27B025A2D6527E79D01")
    assert eax.decrypt(nonce, result, header) == b""


def test_paper_vector_two_bytes():
    eax = _aes_eax(bytes.fromhex("91945D3F4DCBEE0BF45EF52255F095A4"))
    nonce = bytes.fromhex("BECAF043B0A23D843194BA972C66DEBD")
    header = bytes.fromhex("FA3BFD4806EB53FA")
    message = bytes.fromhex("F7FB")
    result = eax.encrypt(nonce, message, header)
    assert result == bytes.fromhex("19DD5C4C9331049D0BDAB0277408F67967E5")
    assert eax.decrypt(nonce, result, header) == message


@pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 32, 100])
def test_round_trip_lengths(aes_eax, length):
    nonce = bytes(16)
    message = bytes((i * 7) & 0xFF for i in range(length))
    sealed = aes_eax.encrypt(nonce, message, b"hdr")
    assert len(sealed) == length + aes_eax.tag_size
    assert aes_eax.decrypt(nonce, sealed, b"hdr") == message


def test_tampered_ciphertext_rejected(aes_eax):
    nonce = bytes(range(16))
    sealed = bytearray(aes_eax.encrypt(nonce, b"attack at dawn"))
    sealed[0] ^= 1
    with pytest.raises(AuthenticationError):
        aes_eax.decrypt(nonce, bytes(sealed))


def test_wrong_header_rejected(aes_eax):
    nonce = bytes(range(16))
    sealed = aes_eax.encrypt(nonce, b"data", b"one")
    with pytest.raises(AuthenticationError):
        aes_eax.decrypt(nonce, sealed, b"two")


def test_wrong_nonce_rejected(aes_eax):
    sealed = aes_eax.encrypt(bytes(16), b"data")
    with pytest.raises(AuthenticationError):
        aes_eax.decrypt(b"\x01" * 16, sealed)


def test_short_ciphertext_rejected(aes_eax):
    with pytest.raises(AuthenticationError):
        aes_eax.decrypt(bytes(16), b"short")


def test_authentication_error_is_value_error(aes_eax):
    with pytest.raises(ValueError):
        aes_eax.decrypt(bytes(16), bytes(20))


def test_different_nonces_give_different_output(aes_eax):
    message = b"same message"
    assert aes_eax.encrypt(bytes(16), message) != aes_eax.encrypt(b"\x02" * 16, message)


def test_eight_byte_block_cipher_round_trip():
    subkeys = feistel_subkeys(b"secret")
    eax = Eax(lambda block: feistel_encrypt_block(block, subkeys), 8)
    assert eax.tag_size == 8
    nonce = b"12345678"
    message = b"a message longer than one block"
    sealed = eax.encrypt(nonce, message, b"header")
    assert len(sealed) == len(message) + 8
    assert eax.decrypt(nonce, sealed, b"header") == message


def test_unsupported_block_size():
    with pytest.raises(ValueError):
        Eax(lambda block: block, 12)


def test_bad_block_function_output():
    with pytest.raises(ValueError):
        Eax(lambda block: block[:4], 16)