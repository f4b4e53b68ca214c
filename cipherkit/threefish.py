"""Threefish-512/1024 counter-mode file encryption with an HMAC-SHA256 tag."""

from __future__ import annotations

import argparse
import hashlib
import hmac
import os
import secrets
import struct
import sys
from enum import Enum
from functools import reduce
from operator import xor
from pathlib import Path
from typing import Sequence

KEY_FILE = "key.key"
VERSION = 1
NONCE_LEN = 8
HEADER_LEN = 4 + 1 + NONCE_LEN
MAC_LEN = 32
HMAC_KEY_LEN = 32
TWEAK_LEN = 16

_MASK64 = (1 << 64) - 1
_C240 = 0x1BD11BDAA9FC1A22

_ROTATIONS_512 = (
    (46, 36, 19, 37),
    (33, 27, 14, 42),
    (17, 49, 36, 39),
    (44, 9, 54, 56),
    (39, 30, 34, 24),
    (13, 50, 10, 17),
    (25, 29, 39, 43),
    (8, 35, 56, 22),
)
_PERMUTATION_512 = (2, 1, 4, 7, 6, 5, 0, 3)

_ROTATIONS_1024 = (
    (24, 13, 8, 47, 8, 17, 22, 37),
    (38, 19, 10, 55, 49, 18, 23, 52),
    (33, 4, 51, 13, 34, 41, 59, 17),
    (5, 20, 48, 41, 47, 28, 16, 25),
    (41, 9, 37, 31, 12, 47, 44, 30),
    (16, 34, 56, 51, 4, 53, 42, 41),
    (31, 44, 47, 46, 19, 42, 44, 25),
    (9, 48, 35, 52, 23, 31, 37, 20),
)
_PERMUTATION_1024 = (0, 9, 2, 13, 6, 11, 4, 15, 10, 7, 12, 3, 14, 5, 8, 1)

# words per block -> (rounds, rotation constants, word permutation)
_PARAMETERS = {
    8: (72, _ROTATIONS_512, _PERMUTATION_512),
    16: (80, _ROTATIONS_1024, _PERMUTATION_1024),
}


def _rotl64(x: int, n: int) -> int:
    return ((x << n) | (x >> (64 - n))) & _MASK64


class Threefish:
    """The Threefish tweakable block cipher with a 64- or 128-byte key."""

    def __init__(self, key: bytes, tweak: bytes = bytes(TWEAK_LEN)) -> None:
        key = bytes(key)
        tweak = bytes(tweak)
        words = len(key) // 8
        if len(key) % 8 or words not in _PARAMETERS:
            raise ValueError(f"Threefish key must be 64 or 128 bytes, got {len(key)}")
        if len(tweak) != TWEAK_LEN:
            raise ValueError(f"Threefish tweak must be {TWEAK_LEN} bytes, got {len(tweak)}")

        self._words = words
        self._rounds, self._rotations, self._permutation = _PARAMETERS[words]

        k = list(struct.unpack(f"<{words}Q", key))
        k.append(reduce(xor, k, _C240))
        t0, t1 = struct.unpack("<2Q", tweak)
        t = (t0, t1, t0 ^ t1)

        self._subkeys = []
        for s in range(self._rounds // 4 + 1):
            subkey = [k[(s + i) % (words + 1)] for i in range(words)]
            subkey[words - 3] = (subkey[words - 3] + t[s % 3]) & _MASK64
            subkey[words - 2] = (subkey[words - 2] + t[(s + 1) % 3]) & _MASK64
            subkey[words - 1] = (subkey[words - 1] + s) & _MASK64
            self._subkeys.append(subkey)

    @property
    def block_size(self) -> int:
        """Block size in bytes."""
        return self._words * 8

    def encrypt_block(self, block: bytes) -> bytes:
        """Encrypt one block of :attr:`block_size` bytes."""
        block = bytes(block)
        if len(block) != self.block_size:
            raise ValueError(f"block must be {self.block_size} bytes, got {len(block)}")
        v = list(struct.unpack(f"<{self._words}Q", block))
        for d in range(self._rounds):
            if d % 4 == 0:
                v = [(x + k) & _MASK64 for x, k in zip(v, self._subkeys[d // 4])]
            mixed = []
            for j, rotation in enumerate(self._rotations[d % 8]):
                x0, x1 = v[2 * j], v[2 * j + 1]
                y0 = (x0 + x1) & _MASK64
                mixed.extend((y0, _rotl64(x1, rotation) ^ y0))
            v = [mixed[p] for p in self._permutation]
        v = [(x + k) & _MASK64 for x, k in zip(v, self._subkeys[self._rounds // 4])]
        return struct.pack(f"<{self._words}Q", *v)


class Variant(Enum):
    """The two file formats: Threefish-1024 and Threefish-512."""

    THREEFISH_1024 = (b"T1FS", 128)
    THREEFISH_512 = (b"T5FS", 64)

    @property
    def magic(self) -> bytes:
        return self.value[0]

    @property
    def block_size(self) -> int:
        return self.value[1]

    @property
    def key_file_size(self) -> int:
        """Size of the key file: cipher key followed by the HMAC key."""
        return self.block_size + HMAC_KEY_LEN


def load_keys(variant: Variant, key_path: str | os.PathLike = KEY_FILE) -> tuple[bytes, bytes]:
    """Read ``(cipher_key, hmac_key)`` from the key file."""
    path = Path(key_path)
    if not path.exists():
        raise FileNotFoundError(
            f"No {path} found. Generate a key externally and place it in {path}"
        )
    data = path.read_bytes()
    expected = variant.key_file_size
    if len(data) != expected:
        raise ValueError(
            f"Invalid key length: expected {expected} bytes "
            f"({variant.block_size} + {HMAC_KEY_LEN}), got {len(data)} bytes"
        )
    return data[:variant.block_size], data[variant.block_size:]


def _check_key(variant: Variant, key: bytes) -> bytes:
    key = bytes(key)
    if len(key) != variant.block_size:
        raise ValueError(f"key must be {variant.block_size} bytes, got {len(key)}")
    return key


def keystream_block(variant: Variant, key: bytes, nonce: int, block_index: int) -> bytes:
    """Encrypt the counter block ``[block_index, 0, ...]`` under tweak ``(nonce, block_index)``."""
    key = _check_key(variant, key)
    if not 0 <= nonce <= _MASK64 or not 0 <= block_index <= _MASK64:
        raise ValueError("nonce and block index must fit in 64 bits")
    tweak = struct.pack("<2Q", nonce, block_index)
    counter = struct.pack("<Q", block_index) + bytes(variant.block_size - 8)
    return Threefish(key, tweak).encrypt_block(counter)


def _apply_keystream(variant: Variant, key: bytes, nonce: int, data: bytes) -> bytes:
    size = variant.block_size
    pieces = []
    for index, start in enumerate(range(0, len(data), size)):
        chunk = data[start:start + size]
        stream = keystream_block(variant, key, nonce, index)[:len(chunk)]
        mixed = int.from_bytes(chunk, "big") ^ int.from_bytes(stream, "big")
        pieces.append(mixed.to_bytes(len(chunk), "big"))
    return b"".join(pieces)


def encrypt_bytes(
    variant: Variant,
    data: bytes,
    key: bytes,
    hmac_key: bytes,
    nonce: int | None = None,
) -> bytes:
    """Return ``magic || version || nonce || ciphertext || mac``.

    A random 64-bit nonce is drawn when none is given.
    """
    key = _check_key(variant, key)
    if nonce is None:
        nonce = secrets.randbits(64)
    if not 0 <= nonce <= _MASK64:
        raise ValueError("nonce must fit in 64 bits")
    header = variant.magic + bytes([VERSION]) + struct.pack("<Q", nonce)
    ciphertext = _apply_keystream(variant, key, nonce, bytes(data))
    mac = hmac.new(bytes(hmac_key), header + ciphertext, hashlib.sha256).digest()
    return header + ciphertext + mac


def decrypt_bytes(variant: Variant, data: bytes, key: bytes, hmac_key: bytes) -> bytes:
    """Check the header and MAC of data from :func:`encrypt_bytes` and decrypt it."""
    key = _check_key(variant, key)
    data = bytes(data)
    if len(data) < HEADER_LEN + MAC_LEN:
        raise ValueError("File too short")
    header = data[:HEADER_LEN]
    if header[:4] != variant.magic:
        raise ValueError("Invalid file format")
    if header[4] != VERSION:
        raise ValueError("Unsupported file version")
    (nonce,) = struct.unpack("<Q", header[5:])
    ciphertext = data[HEADER_LEN:-MAC_LEN]
    mac = data[-MAC_LEN:]

    expected = hmac.new(bytes(hmac_key), header + ciphertext, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, mac):
        raise ValueError("Authentication failed")
    return _apply_keystream(variant, key, nonce, ciphertext)


def process(
    variant: Variant,
    path: str | os.PathLike,
    encrypt: bool,
    key_path: str | os.PathLike = KEY_FILE,
) -> None:
    """Encrypt or decrypt ``path`` in place with the keys from ``key_path``."""
    key, hmac_key = load_keys(variant, key_path)
    path = Path(path)
    data = path.read_bytes()
    if encrypt:
        result = encrypt_bytes(variant, data, key, hmac_key)
    else:
        result = decrypt_bytes(variant, data, key, hmac_key)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_bytes(result)
    os.replace(tmp_path, path)


def _run(variant: Variant, argv: Sequence[str] | None, prog: str) -> int:
    parser = argparse.ArgumentParser(
        prog=prog,
        description=f"In-place file encryption with Threefish-{variant.block_size * 8}.",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("encrypt", help="Encrypt file in-place").add_argument("path")
    commands.add_parser("decrypt", help="Decrypt file in-place").add_argument("path")
    args = parser.parse_args(argv)
    try:
        process(variant, args.path, args.command == "encrypt")
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt or decrypt a file in place with Threefish-1024."""
    return _run(Variant.THREEFISH_1024, argv, "cipherkit-threefish")


def main512(argv: Sequence[str] | None = None) -> int:
    """Encrypt or decrypt a file in place with Threefish-512."""
    return _run(Variant.THREEFISH_512, argv, "cipherkit-threefish512")


if __name__ == "__main__":
    sys.exit(main())