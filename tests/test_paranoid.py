import pytest

from cipherkit.paranoid import (
    DecryptionError,
    Scheme,
    decrypt_bytes,
    decrypt_file,
    derive_key,
    encrypt_bytes,
    encrypt_file,
    main,
)

PASSWORD = "password"
OTHER_PASSWORD = "secret"
ALL_SCHEMES = list(Scheme)


@pytest.mark.parametrize(
    "scheme, nonce_size",
    [
        (Scheme.AES_GCM_SIV, 12),
        (Scheme.CAMELLIA_EAX, 16),
        (Scheme.KUZNYECHIK_EAX, 16),
        (Scheme.SERPENT_EAX, 16),
        (Scheme.XCHACHA20_POLY1305, 24),
    ],
)
def test_nonce_sizes_match_the_formats(scheme, nonce_size):
    sealed = encrypt_bytes(scheme, b"", PASSWORD)
    # salt + nonce + 16-byte tag for an empty message
    assert len(sealed) == 16 + nonce_size + 16
    assert decrypt_bytes(scheme, sealed, PASSWORD) == b""


def test_derive_key_is_deterministic_and_salt_dependent():
    salt = bytes(range(16))
    first = derive_key(PASSWORD, salt)
    assert len(first) == 32
    assert derive_key(PASSWORD, salt) == first
    assert derive_key(PASSWORD, bytes(16)) != first
    assert derive_key(OTHER_PASSWORD, salt) != first


def test_derive_key_rejects_wrong_salt_length():
    with pytest.raises(ValueError):
        derive_key(PASSWORD, b"short")


@pytest.mark.parametrize("scheme", ALL_SCHEMES)
@pytest.mark.parametrize("data", [b"", b"x", b"attack at dawn" * 5])
def test_round_trip(scheme, data):
    sealed = encrypt_bytes(scheme, data, PASSWORD)
    assert len(sealed) == 16 + scheme.nonce_size + len(data) + 16
    assert decrypt_bytes(scheme, sealed, PASSWORD) == data


@pytest.mark.parametrize("scheme", ALL_SCHEMES)
def test_encryption_is_randomised(scheme):
    data = b"same input"
    first = encrypt_bytes(scheme, data, PASSWORD)
    second = encrypt_bytes(scheme, data, PASSWORD)
    assert first[:16] != second[:16]
    assert decrypt_bytes(scheme, first, PASSWORD) == decrypt_bytes(scheme, second, PASSWORD)


@pytest.mark.parametrize("scheme", ALL_SCHEMES)
def test_wrong_password_fails(scheme):
    sealed = encrypt_bytes(scheme, b"payload", PASSWORD)
    with pytest.raises(DecryptionError):
        decrypt_bytes(scheme, sealed, OTHER_PASSWORD)


@pytest.mark.parametrize("scheme", ALL_SCHEMES)
def test_tampered_ciphertext_fails(scheme):
    sealed = bytearray(encrypt_bytes(scheme, b"payload", PASSWORD))
    sealed[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        decrypt_bytes(scheme, bytes(sealed), PASSWORD)


@pytest.mark.parametrize("scheme", ALL_SCHEMES)
def test_too_short_data_fails(scheme):
    with pytest.raises(DecryptionError):
        decrypt_bytes(scheme, bytes(scheme.header_size - 1), PASSWORD)


def test_short_messages_follow_the_source():
    with pytest.raises(DecryptionError, match="File too short to contain salt and nonce"):
        decrypt_bytes(Scheme.XCHACHA20_POLY1305, b"", PASSWORD)
    with pytest.raises(DecryptionError, match="Invalid file format"):
        decrypt_bytes(Scheme.CAMELLIA_EAX, b"", PASSWORD)


def test_header_only_data_fails_authentication():
    scheme = Scheme.SERPENT_EAX
    with pytest.raises(DecryptionError, match="wrong password"):
        decrypt_bytes(scheme, bytes(scheme.header_size), PASSWORD)


def test_wrong_scheme_fails():
    sealed = encrypt_bytes(Scheme.CAMELLIA_EAX, b"payload", PASSWORD)
    with pytest.raises(DecryptionError):
        decrypt_bytes(Scheme.SERPENT_EAX, sealed, PASSWORD)


@pytest.mark.parametrize("scheme", [Scheme.AES_GCM_SIV, Scheme.KUZNYECHIK_EAX])
def test_file_round_trip(tmp_path, scheme):
    target = tmp_path / "notes.txt"
    target.write_bytes(b"file contents")
    encrypt_file(scheme, target, PASSWORD)
    assert target.read_bytes() != b"file contents"
    assert not (tmp_path / "notes.txt.tmp").exists()
    decrypt_file(scheme, target, PASSWORD)
    assert target.read_bytes() == b"file contents"


def test_decrypt_file_with_wrong_password_leaves_file(tmp_path):
    target = tmp_path / "data.bin"
    target.write_bytes(b"keep me")
    encrypt_file(Scheme.XCHACHA20_POLY1305, target, PASSWORD)
    sealed = target.read_bytes()
    with pytest.raises(DecryptionError):
        decrypt_file(Scheme.XCHACHA20_POLY1305, target, OTHER_PASSWORD)
    assert target.read_bytes() == sealed


def test_main_round_trip(tmp_path, capsys):
    target = tmp_path / "doc.txt"
    target.write_bytes(b"hello")
    assert main(["xchacha", "e", str(target), PASSWORD]) == 0
    assert f"Encrypted (in-place): {target}" in capsys.readouterr().out
    assert main(["xchacha", "D", str(target), PASSWORD]) == 0
    assert f"Decrypted (in-place): {target}" in capsys.readouterr().out
    assert target.read_bytes() == b"hello"


def test_main_wording_without_in_place(tmp_path, capsys):
    target = tmp_path / "doc.txt"
    target.write_bytes(b"hello")
    assert main(["camellia", "E", str(target), PASSWORD]) == 0
    assert capsys.readouterr().out.strip() == f"Encrypted: {target}"


def test_main_unknown_command(tmp_path, capsys):
    target = tmp_path / "doc.txt"
    target.write_bytes(b"hello")
    assert main(["aes", "x", str(target), PASSWORD]) == 1
    assert "Unknown command 'X'" in capsys.readouterr().err
    assert target.read_bytes() == b"hello"


def test_main_wrong_argument_count(capsys):
    assert main(["aes", "E"]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_wrong_password_reports_failure(tmp_path, capsys):
    target = tmp_path / "doc.txt"
    target.write_bytes(b"hello")
    assert main(["aes", "E", str(target), PASSWORD]) == 0
    capsys.readouterr()
    assert main(["aes", "D", str(target), OTHER_PASSWORD]) == 1
    assert "Wrong password" in capsys.readouterr().err