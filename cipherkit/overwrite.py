"""In-place AES-256-GCM-SIV file encryption that toggles on a magic header."""

from __future__ import annotations

import hmac
import os
import struct
import sys
import tempfile
from pathlib import Path
from typing import Sequence

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

NONCE_LEN = 12
TAG_LEN = 16
KEY_LEN = 32
KEY_FILE = "key.key"
HEADER = b"AESGCM-SIVv1"

_MASK32 = 0xFFFFFFFF
_POLY = (1 << 128) | (1 << 127) | (1 << 126) | (1 << 121) | 1


def _aes_ecb(key: bytes, data: bytes) -> bytes:
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def _dot(a: int, b: int) -> int:
    """POLYVAL multiplication: a * b * x^-128 in GF(2^128)."""
    product = 0
    while b:
        if b & 1:
            product ^= a
        a <<= 1
        b >>= 1
    for _ in range(128):
        if product & 1:
            product ^= _POLY
        product >>= 1
    return product


def _polyval(h: bytes, data: bytes) -> bytes:
    h_int = int.from_bytes(h, "little")
    acc = 0
    for start in range(0, len(data), 16):
        acc = _dot(acc ^ int.from_bytes(data[start:start + 16], "little"), h_int)
    return acc.to_bytes(16, "little")


def _pad16(data: bytes) -> bytes:
    return data + bytes(-len(data) % 16)


def _derive_keys(key: bytes, nonce: bytes) -> tuple[bytes, bytes]:
    count = 2 + len(key) // 8
    blocks = _aes_ecb(key, b"".join(struct.pack("<I", i) + nonce for i in range(count)))
    halves = [blocks[16 * i:16 * i + 8] for i in range(count)]
    return b"".join(halves[:2]), b"".join(halves[2:])


def _compute_tag(auth_key: bytes, enc_key: bytes, nonce: bytes, plaintext: bytes, aad: bytes) -> bytes:
    lengths = struct.pack("<QQ", len(aad) * 8, len(plaintext) * 8)
    s = bytearray(_polyval(auth_key, _pad16(aad) + _pad16(plaintext) + lengths))
    for i, byte in enumerate(nonce):
        s[i] ^= byte
    s[15] &= 0x7F
    return _aes_ecb(enc_key, bytes(s))


def _ctr(enc_key: bytes, tag: bytes, data: bytes) -> bytes:
    if not data:
        return b""
    first = int.from_bytes(tag[:4], "little")
    suffix = tag[4:15] + bytes([tag[15] | 0x80])
    count = -(-len(data) // 16)
    counters = b"".join(((first + i) & _MASK32).to_bytes(4, "little") + suffix for i in range(count))
    stream = _aes_ecb(enc_key, counters)[:len(data)]
    mixed = int.from_bytes(data, "big") ^ int.from_bytes(stream, "big")
    return mixed.to_bytes(len(data), "big")


def _seal(key: bytes, nonce: bytes, plaintext: bytes, aad: bytes = b"") -> bytes:
    auth_key, enc_key = _derive_keys(key, nonce)
    tag = _compute_tag(auth_key, enc_key, nonce, plaintext, aad)
    return _ctr(enc_key, tag, plaintext) + tag


def _open(key: bytes, nonce: bytes, sealed: bytes, aad: bytes = b"") -> bytes:
    if len(sealed) < TAG_LEN:
        raise ValueError("Decryption failed")
    auth_key, enc_key = _derive_keys(key, nonce)
    tag = sealed[-TAG_LEN:]
    plaintext = _ctr(enc_key, tag, sealed[:-TAG_LEN])
    expected = _compute_tag(auth_key, enc_key, nonce, plaintext, aad)
    if not hmac.compare_digest(expected, tag):
        raise ValueError("Decryption failed")
    return plaintext


def _check_key(key: bytes) -> bytes:
    key = bytes(key)
    if len(key) != KEY_LEN:
        raise ValueError("Key file must be exactly 32 bytes (256-bit)")
    return key


def load_key(path: str | os.PathLike = KEY_FILE) -> bytes:
    """Read the 32-byte key from ``path``."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise OSError(f"Failed to read {path} file: {exc}") from exc
    return _check_key(data)


def is_encrypted(data: bytes) -> bool:
    """True when ``data`` starts with the magic header."""
    return bytes(data).startswith(HEADER)


def encrypt_bytes(data: bytes, key: bytes) -> bytes:
    """Return ``HEADER || nonce || ciphertext || tag`` under a fresh random nonce."""
    key = _check_key(key)
    nonce = os.urandom(NONCE_LEN)
    return HEADER + nonce + _seal(key, nonce, bytes(data))


def decrypt_bytes(data: bytes, key: bytes) -> bytes:
    """Decrypt data produced by :func:`encrypt_bytes`."""
    key = _check_key(key)
    data = bytes(data)
    if not is_encrypted(data):
        raise ValueError("Data does not start with the encryption header")
    rest = data[len(HEADER):]
    if len(rest) < NONCE_LEN:
        raise ValueError("Encrypted file is too short")
    return _open(key, rest[:NONCE_LEN], rest[NONCE_LEN:])


def toggle_file(path: str | os.PathLike, key: bytes) -> bool:
    """Encrypt a plain file or decrypt an encrypted one in place.

    Returns True when the file was encrypted, False when it was decrypted.
    """
    path = Path(path)
    data = path.read_bytes()
    encrypting = not is_encrypted(data)
    result = encrypt_bytes(data, key) if encrypting else decrypt_bytes(data, key)

    directory = path.parent if str(path.parent) else Path(".")
    fd, tmp_name = tempfile.mkstemp(dir=directory)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(result)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return encrypting


def main(argv: Sequence[str] | None = None) -> int:
    """Toggle the encryption of one file using the key in ./key.key."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("Usage: cipherkit-overwrite <file>", file=sys.stderr)
        return 1
    try:
        key = load_key(KEY_FILE)
        encrypted = toggle_file(args[0], key)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    action = "Encrypted" if encrypted else "Decrypted"
    print(f"✅ {action} in place → {args[0]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())