"""Serpent-256 in CBC mode with PKCS#7 padding and an HMAC-SHA256 tag."""

from __future__ import annotations

import hashlib
import hmac
import os
import struct
import sys
from pathlib import Path
from typing import Iterator, Sequence

BLOCK_SIZE = 16
TAG_SIZE = 32
KEY_SIZE = 32
KEY_FILE = "key.key"

_PHI = 0x9E3779B9
_MASK32 = 0xFFFFFFFF
_ROUNDS = 32

_SBOXES = (
    (3, 8, 15, 1, 10, 6, 5, 11, 14, 13, 4, 2, 7, 0, 9, 12),
    (15, 12, 2, 7, 9, 0, 5, 10, 1, 11, 14, 8, 6, 13, 3, 4),
    (8, 6, 7, 9, 3, 12, 10, 15, 13, 1, 14, 4, 0, 11, 5, 2),
    (0, 15, 11, 8, 12, 9, 6, 3, 13, 1, 2, 4, 10, 7, 5, 14),
    (1, 15, 8, 3, 12, 0, 11, 6, 2, 5, 4, 10, 9, 14, 7, 13),
    (15, 5, 2, 11, 4, 10, 9, 12, 0, 3, 14, 8, 13, 6, 7, 1),
    (7, 2, 12, 5, 8, 4, 6, 11, 14, 9, 1, 15, 13, 3, 10, 0),
    (1, 13, 15, 0, 14, 8, 2, 11, 7, 4, 12, 10, 9, 3, 5, 6),
)
_INV_SBOXES = tuple(tuple(box.index(v) for v in range(16)) for box in _SBOXES)

Words = tuple[int, int, int, int]


def _rotl(x: int, n: int) -> int:
    return ((x << n) | (x >> (32 - n))) & _MASK32


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (32 - n))) & _MASK32


def _apply_sbox(table: Sequence[int], words: Sequence[int]) -> Words:
    """Apply a 4-bit S-box in bitslice form: bit j of each word forms one nibble."""
    x0, x1, x2, x3 = words
    y0 = y1 = y2 = y3 = 0
    for j in range(32):
        v = (x0 >> j & 1) | (x1 >> j & 1) << 1 | (x2 >> j & 1) << 2 | (x3 >> j & 1) << 3
        s = table[v]
        y0 |= (s & 1) << j
        y1 |= (s >> 1 & 1) << j
        y2 |= (s >> 2 & 1) << j
        y3 |= (s >> 3 & 1) << j
    return y0, y1, y2, y3


def _mix(words: Sequence[int], key: Sequence[int]) -> Words:
    a0, a1, a2, a3 = words
    k0, k1, k2, k3 = key
    return a0 ^ k0, a1 ^ k1, a2 ^ k2, a3 ^ k3


def _linear(words: Words) -> Words:
    x0, x1, x2, x3 = words
    x0 = _rotl(x0, 13)
    x2 = _rotl(x2, 3)
    x1 ^= x0 ^ x2
    x3 ^= x2 ^ ((x0 << 3) & _MASK32)
    x1 = _rotl(x1, 1)
    x3 = _rotl(x3, 7)
    x0 ^= x1 ^ x3
    x2 ^= x3 ^ ((x1 << 7) & _MASK32)
    x0 = _rotl(x0, 5)
    x2 = _rotl(x2, 22)
    return x0, x1, x2, x3


def _inverse_linear(words: Words) -> Words:
    x0, x1, x2, x3 = words
    x2 = _rotr(x2, 22)
    x0 = _rotr(x0, 5)
    x2 ^= x3 ^ ((x1 << 7) & _MASK32)
    x0 ^= x1 ^ x3
    x3 = _rotr(x3, 7)
    x1 = _rotr(x1, 1)
    x3 ^= x2 ^ ((x0 << 3) & _MASK32)
    x1 ^= x0 ^ x2
    x2 = _rotr(x2, 3)
    x0 = _rotr(x0, 13)
    return x0, x1, x2, x3


class Serpent:
    """The Serpent block cipher with a key of 1 to 32 bytes."""

    def __init__(self, key: bytes) -> None:
        key = bytes(key)
        if not 1 <= len(key) <= KEY_SIZE:
            raise ValueError(f"Serpent key must be 1 to {KEY_SIZE} bytes, got {len(key)}")
        if len(key) < KEY_SIZE:
            key += b"\x01" + bytes(KEY_SIZE - 1 - len(key))
        w = list(struct.unpack("<8I", key))
        for i in range(4 * (_ROUNDS + 1)):
            w.append(_rotl(w[i] ^ w[i + 3] ^ w[i + 5] ^ w[i + 7] ^ _PHI ^ i, 11))
        prekeys = w[8:]
        self._round_keys = [
            _apply_sbox(_SBOXES[(3 - r) % 8], prekeys[4 * r:4 * r + 4])
            for r in range(_ROUNDS + 1)
        ]

    @staticmethod
    def _load(block: bytes) -> Words:
        if len(block) != BLOCK_SIZE:
            raise ValueError(f"block must be {BLOCK_SIZE} bytes, got {len(block)}")
        return struct.unpack("<4I", bytes(block))

    def encrypt_block(self, block: bytes) -> bytes:
        """Encrypt one 16-byte block."""
        words = self._load(block)
        for r in range(_ROUNDS):
            words = _apply_sbox(_SBOXES[r % 8], _mix(words, self._round_keys[r]))
            if r < _ROUNDS - 1:
                words = _linear(words)
        return struct.pack("<4I", *_mix(words, self._round_keys[_ROUNDS]))

    def decrypt_block(self, block: bytes) -> bytes:
        """Decrypt one 16-byte block."""
        words = _mix(self._load(block), self._round_keys[_ROUNDS])
        for r in reversed(range(_ROUNDS)):
            if r < _ROUNDS - 1:
                words = _inverse_linear(words)
            words = _mix(_apply_sbox(_INV_SBOXES[r % 8], words), self._round_keys[r])
        return struct.pack("<4I", *words)


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def _blocks(data: bytes) -> Iterator[bytes]:
    for start in range(0, len(data), BLOCK_SIZE):
        yield data[start:start + BLOCK_SIZE]


def derive_hmac_key(key: bytes) -> bytes:
    """The HMAC key is the SHA-256 digest of the encryption key."""
    return hashlib.sha256(key).digest()


def encrypt_data(data: bytes, key: bytes, hmac_key: bytes) -> bytes:
    """Return ``iv || ciphertext || tag`` for ``data`` under a fresh random IV."""
    cipher = Serpent(key)
    iv = os.urandom(BLOCK_SIZE)
    pad_len = BLOCK_SIZE - len(data) % BLOCK_SIZE
    padded = bytes(data) + bytes([pad_len]) * pad_len

    encrypted = []
    previous = iv
    for block in _blocks(padded):
        previous = cipher.encrypt_block(_xor(block, previous))
        encrypted.append(previous)
    ciphertext = b"".join(encrypted)

    tag = hmac.new(hmac_key, iv + ciphertext, hashlib.sha256).digest()
    return iv + ciphertext + tag


def decrypt_data(data: bytes, key: bytes, hmac_key: bytes) -> bytes:
    """Verify the tag of ``iv || ciphertext || tag`` and return the plaintext."""
    data = bytes(data)
    if len(data) < BLOCK_SIZE + TAG_SIZE:
        raise ValueError("Data too short to decrypt")
    iv = data[:BLOCK_SIZE]
    ciphertext = data[BLOCK_SIZE:-TAG_SIZE]
    tag = data[-TAG_SIZE:]

    expected = hmac.new(hmac_key, iv + ciphertext, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, tag):
        raise ValueError("HMAC verification failed")
    if len(ciphertext) % BLOCK_SIZE:
        raise ValueError("Ciphertext is not a whole number of blocks")

    cipher = Serpent(key)
    plain_blocks = []
    previous = iv
    for block in _blocks(ciphertext):
        plain_blocks.append(_xor(cipher.decrypt_block(block), previous))
        previous = block
    plaintext = b"".join(plain_blocks)

    if not plaintext:
        raise ValueError("Empty plaintext")
    pad_len = plaintext[-1]
    if not 1 <= pad_len <= BLOCK_SIZE or plaintext[-pad_len:] != bytes([pad_len]) * pad_len:
        raise ValueError("Invalid PKCS#7 padding")
    return plaintext[:-pad_len]


def process_file(path: str | os.PathLike, encrypt: bool, key_path: str | os.PathLike = KEY_FILE) -> None:
    """Encrypt or decrypt ``path`` in place with the key stored in ``key_path``."""
    try:
        key = Path(key_path).read_bytes()
    except OSError as exc:
        raise OSError(f"Failed to read {key_path}: {exc}") from exc
    if len(key) != KEY_SIZE:
        raise ValueError(f"{key_path} must be exactly {KEY_SIZE} bytes")

    path = Path(path)
    data = path.read_bytes()
    hmac_key = derive_hmac_key(key)
    result = encrypt_data(data, key, hmac_key) if encrypt else decrypt_data(data, key, hmac_key)

    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_bytes(result)
    os.replace(tmp_path, path)


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt (E) or decrypt (D) a file in place with the key in ./key.key."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 2 or args[0] not in ("E", "D"):
        print("Usage: cipherkit-serpent [E|D] <filename>", file=sys.stderr)
        return 1
    encrypt = args[0] == "E"
    try:
        process_file(args[1], encrypt)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    action = "Encrypt" if encrypt else "Decrypt"
    print(f'{action}ion successful: "{args[1]}"')
    return 0


if __name__ == "__main__":
    sys.exit(main())