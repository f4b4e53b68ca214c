"""Passphrase-based file encryption in the age v1 format (scrypt recipient)."""

from __future__ import annotations

import argparse
import base64
import binascii
import getpass
import hashlib
import hmac
import io
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Sequence

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

VERSION_LINE = b"age-encryption.org/v1"
SCRYPT_LABEL = b"age-encryption.org/v1/scrypt"
FILE_KEY_SIZE = 16
SALT_SIZE = 16
NONCE_SIZE = 16
TAG_SIZE = 16
CHUNK_SIZE = 64 * 1024
COLUMNS = 64
DEFAULT_WORK_FACTOR = 18
MAX_WORK_FACTOR = 22

_ZERO_NONCE = bytes(12)
_MAX_COUNTER = 1 << 88
_MAX_LINE = 4096
_DECIMAL = re.compile(rb"[1-9][0-9]*")


class AgeError(Exception):
    """Raised when a passphrase or an age file cannot be processed."""


@dataclass(frozen=True)
class _Stanza:
    args: tuple[bytes, ...]
    body: bytes


def _b64encode(data: bytes) -> bytes:
    return base64.b64encode(data).rstrip(b"=")


def _b64decode(text: bytes) -> bytes:
    if text.endswith(b"="):
        raise AgeError("base64 in header must not be padded")
    try:
        data = base64.b64decode(text + b"=" * (-len(text) % 4), validate=True)
    except binascii.Error as exc:
        raise AgeError("invalid base64 in header") from exc
    if _b64encode(data) != text:
        raise AgeError("non-canonical base64 in header")
    return data


def _hkdf(ikm: bytes, salt: bytes | None, info: bytes) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=32, salt=salt, info=info).derive(ikm)


def _scrypt_key(passphrase: str, salt: bytes, work_factor: int) -> bytes:
    kdf = Scrypt(salt=SCRYPT_LABEL + salt, length=32, n=1 << work_factor, r=8, p=1)
    return kdf.derive(passphrase.encode("utf-8"))


def _header_mac(file_key: bytes, header: bytes) -> bytes:
    return hmac.new(_hkdf(file_key, None, b"header"), header, hashlib.sha256).digest()


def _wrap_body(body: bytes) -> bytes:
    encoded = _b64encode(body)
    lines = [encoded[start:start + COLUMNS] for start in range(0, len(encoded), COLUMNS)]
    if len(encoded) % COLUMNS == 0:
        lines.append(b"")
    return b"".join(line + b"\n" for line in lines)


def _chunk_nonce(counter: int, last: bool) -> bytes:
    if counter >= _MAX_COUNTER:
        raise AgeError("payload is too long")
    return counter.to_bytes(11, "big") + (b"\x01" if last else b"\x00")


def _read_exact(reader: BinaryIO, size: int) -> bytes:
    pieces = []
    remaining = size
    while remaining:
        piece = reader.read(remaining)
        if not piece:
            break
        pieces.append(piece)
        remaining -= len(piece)
    return b"".join(pieces)


def _check_work_factor(work_factor: int) -> None:
    if not 1 <= work_factor <= MAX_WORK_FACTOR:
        raise ValueError(f"work factor must be between 1 and {MAX_WORK_FACTOR}, got {work_factor}")


def _encode_header(file_key: bytes, passphrase: str, work_factor: int) -> bytes:
    salt = os.urandom(SALT_SIZE)
    wrap_key = _scrypt_key(passphrase, salt, work_factor)
    wrapped = ChaCha20Poly1305(wrap_key).encrypt(_ZERO_NONCE, file_key, None)
    header = (
        VERSION_LINE + b"\n"
        + b"-> scrypt " + _b64encode(salt) + b" " + str(work_factor).encode() + b"\n"
        + _wrap_body(wrapped)
        + b"---"
    )
    return header + b" " + _b64encode(_header_mac(file_key, header)) + b"\n"


def _read_header(reader: BinaryIO) -> tuple[list[_Stanza], bytes, bytes]:
    raw = bytearray()

    def next_line() -> bytes:
        text = reader.readline(_MAX_LINE)
        if not text.endswith(b"\n"):
            raise AgeError("unexpected end of header")
        raw.extend(text)
        return text[:-1]

    if next_line() != VERSION_LINE:
        raise AgeError("not an age v1 file")

    stanzas = []
    current = next_line()
    while current.startswith(b"-> "):
        args = tuple(current[3:].split(b" "))
        if not all(args):
            raise AgeError("malformed recipient line")
        body_lines = []
        while True:
            body_line = next_line()
            if len(body_line) > COLUMNS:
                raise AgeError("stanza body line is too long")
            body_lines.append(body_line)
            if len(body_line) < COLUMNS:
                break
        stanzas.append(_Stanza(args, _b64decode(b"".join(body_lines))))
        current = next_line()

    if not current.startswith(b"--- "):
        raise AgeError("malformed header")
    if not stanzas:
        raise AgeError("header has no recipients")
    mac = _b64decode(current[4:])
    if len(mac) != 32:
        raise AgeError("header MAC has the wrong length")
    header = bytes(raw[:len(raw) - len(current) - 1 + 3])
    return stanzas, header, mac


def _unwrap_file_key(stanzas: list[_Stanza], passphrase: str) -> bytes:
    scrypt = [stanza for stanza in stanzas if stanza.args[0] == b"scrypt"]
    if not scrypt:
        raise AgeError("no passphrase-encrypted recipient found")
    if len(stanzas) != 1:
        raise AgeError("an scrypt recipient must be the only one")
    stanza = scrypt[0]
    if len(stanza.args) != 3:
        raise AgeError("malformed scrypt recipient")
    salt = _b64decode(stanza.args[1])
    if len(salt) != SALT_SIZE:
        raise AgeError("scrypt salt has the wrong length")
    if not _DECIMAL.fullmatch(stanza.args[2]):
        raise AgeError("malformed scrypt work factor")
    work_factor = int(stanza.args[2])
    if work_factor > MAX_WORK_FACTOR:
        raise AgeError(f"scrypt work factor {work_factor} is too high")
    if len(stanza.body) != FILE_KEY_SIZE + TAG_SIZE:
        raise AgeError("scrypt body has the wrong length")
    wrap_key = _scrypt_key(passphrase, salt, work_factor)
    try:
        return ChaCha20Poly1305(wrap_key).decrypt(_ZERO_NONCE, stanza.body, None)
    except InvalidTag as exc:
        raise AgeError("incorrect passphrase") from exc


def _encrypt_stream(reader: BinaryIO, writer: BinaryIO, passphrase: str, work_factor: int) -> None:
    _check_work_factor(work_factor)
    file_key = os.urandom(FILE_KEY_SIZE)
    writer.write(_encode_header(file_key, passphrase, work_factor))
    nonce = os.urandom(NONCE_SIZE)
    writer.write(nonce)
    aead = ChaCha20Poly1305(_hkdf(file_key, nonce, b"payload"))

    counter = 0
    chunk = _read_exact(reader, CHUNK_SIZE)
    while True:
        following = _read_exact(reader, CHUNK_SIZE) if len(chunk) == CHUNK_SIZE else b""
        last = not following
        writer.write(aead.encrypt(_chunk_nonce(counter, last), chunk, None))
        if last:
            return
        counter += 1
        chunk = following


def _decrypt_stream(reader: BinaryIO, writer: BinaryIO, passphrase: str) -> None:
    stanzas, header, mac = _read_header(reader)
    file_key = _unwrap_file_key(stanzas, passphrase)
    if not hmac.compare_digest(_header_mac(file_key, header), mac):
        raise AgeError("header MAC mismatch")

    nonce = _read_exact(reader, NONCE_SIZE)
    if len(nonce) != NONCE_SIZE:
        raise AgeError("payload is truncated")
    aead = ChaCha20Poly1305(_hkdf(file_key, nonce, b"payload"))

    full = CHUNK_SIZE + TAG_SIZE
    counter = 0
    chunk = _read_exact(reader, full)
    while True:
        following = _read_exact(reader, full) if len(chunk) == full else b""
        last = not following
        if len(chunk) < TAG_SIZE:
            raise AgeError("payload is truncated")
        try:
            plaintext = aead.decrypt(_chunk_nonce(counter, last), chunk, None)
        except InvalidTag as exc:
            raise AgeError("payload authentication failed") from exc
        if last and not plaintext and counter:
            raise AgeError("final payload chunk is empty")
        writer.write(plaintext)
        if last:
            return
        counter += 1
        chunk = following


def encrypt(data: bytes, passphrase: str, work_factor: int = DEFAULT_WORK_FACTOR) -> bytes:
    """Encrypt ``data`` to an age file protected by ``passphrase``."""
    out = io.BytesIO()
    _encrypt_stream(io.BytesIO(bytes(data)), out, passphrase, work_factor)
    return out.getvalue()


def decrypt(data: bytes, passphrase: str) -> bytes:
    """Decrypt an age file protected by ``passphrase``."""
    out = io.BytesIO()
    _decrypt_stream(io.BytesIO(bytes(data)), out, passphrase)
    return out.getvalue()


def read_passphrase(confirm: bool = False) -> str:
    """Prompt for a passphrase on the terminal, optionally asking twice."""
    try:
        first = getpass.getpass("Enter passphrase: ", stream=sys.stderr).strip()
        if confirm:
            second = getpass.getpass("Confirm passphrase: ", stream=sys.stderr).strip()
            if first != second:
                raise AgeError("❌ Passphrases do not match")
    except EOFError as exc:
        raise AgeError("❌ No passphrase given") from exc
    return first


def _run_to_file(source_path: Path, output_path: Path, action, failure: str) -> None:
    try:
        source = source_path.open("rb")
    except OSError as exc:
        raise AgeError(f"❌ Failed to open '{source_path}': {exc}") from exc
    tmp = output_path.with_suffix(".tmp")
    with source:
        try:
            target = tmp.open("wb")
        except OSError as exc:
            raise AgeError(f"❌ Failed to create '{tmp}': {exc}") from exc
        try:
            with target:
                action(source, target)
        except AgeError as exc:
            tmp.unlink(missing_ok=True)
            raise AgeError(f"{failure}: {exc}") from exc
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise AgeError(f"{failure}: {exc}") from exc
    try:
        os.replace(tmp, output_path)
    except OSError as exc:
        raise AgeError(f"❌ Failed to rename output file: {exc}") from exc


def encrypt_file(
    input_path: str | os.PathLike,
    output_path: str | os.PathLike,
    passphrase: str | None = None,
) -> None:
    """Encrypt ``input_path`` into ``output_path``, prompting for a passphrase if none is given."""
    if passphrase is None:
        passphrase = read_passphrase(confirm=True)
    _run_to_file(
        Path(input_path),
        Path(output_path),
        lambda source, target: _encrypt_stream(source, target, passphrase, DEFAULT_WORK_FACTOR),
        "❌ Encryption error",
    )


def decrypt_file(
    input_path: str | os.PathLike,
    output_path: str | os.PathLike,
    passphrase: str | None = None,
) -> None:
    """Decrypt ``input_path`` into ``output_path``, prompting for a passphrase if none is given."""
    if passphrase is None:
        passphrase = read_passphrase(confirm=False)
    _run_to_file(
        Path(input_path),
        Path(output_path),
        lambda source, target: _decrypt_stream(source, target, passphrase),
        "❌ Decryption failed",
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt or decrypt a file with a passphrase."""
    parser = argparse.ArgumentParser(
        prog="cipherkit-age",
        description="🔐 Password-based file encryption",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (("enc", "Encrypt a file"), ("dec", "Decrypt a file")):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("input")
        sub.add_argument("output")
    args = parser.parse_args(argv)

    try:
        if args.command == "enc":
            encrypt_file(args.input, args.output)
            print(f"✅ Encrypted → '{args.output}'")
        else:
            decrypt_file(args.input, args.output)
            print(f"✅ Decrypted → '{args.output}'")
    except AgeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())