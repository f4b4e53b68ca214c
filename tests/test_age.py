import base64
from unittest import mock

import pytest

from cipherkit import age
from cipherkit.age import AgeError

PASSPHRASE = "password"
FAST = 10


@pytest.fixture(scope="module")
def sealed():
    return age.encrypt(b"hello", PASSPHRASE, work_factor=FAST)


@pytest.mark.parametrize(
    "size",
    [0, 1, 1000, age.CHUNK_SIZE - 1, age.CHUNK_SIZE, age.CHUNK_SIZE + 1, 2 * age.CHUNK_SIZE + 7],
)
def test_round_trip(size):
    data = bytes((i * 7) & 0xFF for i in range(size))
    assert age.decrypt(age.encrypt(data, PASSPHRASE, work_factor=FAST), PASSPHRASE) == data


def test_header_layout(sealed):
    lines = sealed.split(b"\n")
    assert lines[0] == age.VERSION_LINE
    parts = lines[1].split(b" ")
    assert parts[:2] == [b"->", b"scrypt"]
    assert parts[3] == str(FAST).encode()
    salt = base64.b64decode(parts[2] + b"==")
    assert len(salt) == age.SALT_SIZE
    assert len(lines[2]) == 43
    assert lines[3].startswith(b"--- ")


def test_payload_size_for_empty_input():
    data = age.encrypt(b"", PASSPHRASE, work_factor=FAST)
    header_end = data.index(b"\n--- ")
    header_end = data.index(b"\n", header_end + 1) + 1
    assert len(data) - header_end == age.NONCE_SIZE + age.TAG_SIZE


def test_payload_size_two_chunks():
    plain = bytes(age.CHUNK_SIZE + 5)
    data = age.encrypt(plain, PASSPHRASE, work_factor=FAST)
    header_end = data.index(b"\n", data.index(b"\n--- ") + 1) + 1
    assert len(data) - header_end == age.NONCE_SIZE + len(plain) + 2 * age.TAG_SIZE


def test_encryption_is_randomised():
    first = age.encrypt(b"same", PASSPHRASE, work_factor=FAST)
    second = age.encrypt(b"same", PASSPHRASE, work_factor=FAST)
    assert first != second
    assert age.decrypt(first, PASSPHRASE) == age.decrypt(second, PASSPHRASE) == b"same"


def test_wrong_passphrase(sealed):
    with pytest.raises(AgeError, match="incorrect passphrase"):
        age.decrypt(sealed, "secret")


def test_tampered_payload(sealed):
    tampered = sealed[:-1] + bytes([sealed[-1] ^ 1])
    with pytest.raises(AgeError, match="authentication"):
        age.decrypt(tampered, PASSPHRASE)


def test_tampered_header_mac(sealed):
    start = sealed.index(b"\n--- ") + 5
    end = sealed.index(b"\n", start)
    tampered = sealed[:start] + base64.b64encode(bytes(32)).rstrip(b"=") + sealed[end:]
    with pytest.raises(AgeError, match="MAC"):
        age.decrypt(tampered, PASSPHRASE)


def test_truncated_last_chunk():
    size = age.CHUNK_SIZE + 100
    data = age.encrypt(bytes(size), PASSPHRASE, work_factor=FAST)
    truncated = data[:len(data) - (100 + age.TAG_SIZE)]
    with pytest.raises(AgeError):
        age.decrypt(truncated, PASSPHRASE)


def test_scrypt_must_be_alone(sealed):
    first_line_end = sealed.index(b"\n") + 1
    extra = sealed[:first_line_end] + b"-> grease\n\n" + sealed[first_line_end:]
    with pytest.raises(AgeError, match="only"):
        age.decrypt(extra, PASSPHRASE)


def test_work_factor_too_high(sealed):
    raised = sealed.replace(b" 10\n", b" 23\n", 1)
    with pytest.raises(AgeError, match="work factor"):
        age.decrypt(raised, PASSPHRASE)


def test_not_an_age_file():
    with pytest.raises(AgeError):
        age.decrypt(b"hello", PASSPHRASE)


@pytest.mark.parametrize("work_factor", [0, age.MAX_WORK_FACTOR + 1])
def test_invalid_work_factor(work_factor):
    with pytest.raises(ValueError):
        age.encrypt(b"data", PASSPHRASE, work_factor=work_factor)


def test_read_passphrase_strips():
    with mock.patch("getpass.getpass", side_effect=["  password \n"]):
        assert age.read_passphrase(False) == "password"


def test_read_passphrase_confirm_mismatch():
    with mock.patch("getpass.getpass", side_effect=["password", "secret"]):
        with pytest.raises(AgeError, match="do not match"):
            age.read_passphrase(True)


def test_read_passphrase_confirm_match():
    with mock.patch("getpass.getpass", side_effect=["password", "password"]):
        assert age.read_passphrase(True) == "password"


def test_decrypt_file(tmp_path):
    source = tmp_path / "secret.age"
    source.write_bytes(age.encrypt(b"file content", PASSPHRASE, work_factor=FAST))
    target = tmp_path / "plain.txt"
    age.decrypt_file(source, target, PASSPHRASE)
    assert target.read_bytes() == b"file content"
    assert not (tmp_path / "plain.tmp").exists()


def test_decrypt_file_wrong_passphrase_leaves_no_output(tmp_path):
    source = tmp_path / "secret.age"
    source.write_bytes(age.encrypt(b"file content", PASSPHRASE, work_factor=FAST))
    target = tmp_path / "plain.txt"
    with pytest.raises(AgeError, match="Decryption failed"):
        age.decrypt_file(source, target, "secret")
    assert not target.exists()
    assert not (tmp_path / "plain.tmp").exists()


def test_encrypt_file_round_trip(tmp_path):
    source = tmp_path / "plain.txt"
    source.write_bytes(b"round trip")
    target = tmp_path / "plain.age"
    age.encrypt_file(source, target, PASSPHRASE)
    assert target.read_bytes().startswith(age.VERSION_LINE + b"\n")
    assert age.decrypt(target.read_bytes(), PASSPHRASE) == b"round trip"


def test_encrypt_file_missing_input(tmp_path):
    with pytest.raises(AgeError, match="Failed to open"):
        age.encrypt_file(tmp_path / "missing", tmp_path / "out.age", PASSPHRASE)


def test_main_round_trip(tmp_path, capsys):
    source = tmp_path / "in.txt"
    source.write_bytes(b"through main")
    sealed_path = tmp_path / "in.age"
    restored = tmp_path / "out.txt"
    with mock.patch("getpass.getpass", side_effect=["password", "password"]):
        assert age.main(["enc", str(source), str(sealed_path)]) == 0
    with mock.patch("getpass.getpass", side_effect=["password"]):
        assert age.main(["dec", str(sealed_path), str(restored)]) == 0
    assert restored.read_bytes() == b"through main"
    assert "Decrypted" in capsys.readouterr().out


def test_main_missing_input(tmp_path):
    with mock.patch("getpass.getpass", side_effect=["password"]):
        assert age.main(["dec", str(tmp_path / "missing"), str(tmp_path / "out")]) == 1