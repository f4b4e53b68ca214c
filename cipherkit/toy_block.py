"""Toy 64-bit block ciphers: a 16-round Feistel network and TEA."""

from __future__ import annotations

import argparse
import struct
import sys
from itertools import cycle, islice
from pathlib import Path
from typing import Sequence

ROUND_COUNT = 16
TEA_DELTA = 0x9E3779B9
TEA_ROUNDS = 32
BLOCK_SIZE = 8

_MASK32 = 0xFFFFFFFF


def _repeat_key(password: bytes, length: int) -> bytes:
    if not password:
        raise ValueError("Password cannot be empty")
    return bytes(islice(cycle(password), length))


def _pad(data: bytes) -> bytes:
    return bytes(data) + b"\x00" * (-len(data) % BLOCK_SIZE)


def _blocks(data: bytes):
    for start in range(0, len(data), BLOCK_SIZE):
        yield data[start:start + BLOCK_SIZE]


def _split_block(block: bytes) -> tuple[int, int]:
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"block must be {BLOCK_SIZE} bytes, got {len(block)}")
    return struct.unpack(">2I", block)


def _round_function(x: int, k: int) -> int:
    value = (x + k) & _MASK32
    return ((value << 5) | (value >> 27)) & _MASK32


def feistel_subkeys(password: bytes) -> tuple[int, ...]:
    """Derive the sixteen 32-bit round keys from the repeated password bytes."""
    return struct.unpack(f">{ROUND_COUNT}I", _repeat_key(password, 4 * ROUND_COUNT))


def feistel_encrypt_block(block: bytes, subkeys: Sequence[int]) -> bytes:
    """Encrypt one 8-byte block."""
    left, right = _split_block(block)
    for key in subkeys[:ROUND_COUNT]:
        left, right = right, left ^ _round_function(right, key)
    return struct.pack(">2I", left, right)


def feistel_decrypt_block(block: bytes, subkeys: Sequence[int]) -> bytes:
    """Decrypt one 8-byte block."""
    left, right = _split_block(block)
    for key in reversed(subkeys[:ROUND_COUNT]):
        left, right = right ^ _round_function(left, key), left
    return struct.pack(">2I", left, right)


def feistel(data: bytes, password: bytes, decrypt: bool = False) -> bytes:
    """Zero-pad ``data`` to whole blocks and run every block through the network."""
    subkeys = feistel_subkeys(password)
    step = feistel_decrypt_block if decrypt else feistel_encrypt_block
    return b"".join(step(block, subkeys) for block in _blocks(_pad(data)))


def tea_key(password: bytes) -> tuple[int, int, int, int]:
    """Build the 128-bit TEA key from the repeated password bytes."""
    return struct.unpack(">4I", _repeat_key(password, 16))


def _tea_mix(v: int, total: int, k: int) -> int:
    return ((((v << 4) & _MASK32) ^ (v >> 5)) + v & _MASK32) ^ ((total + k) & _MASK32)


def tea_encrypt_block(v0: int, v1: int, key: Sequence[int]) -> tuple[int, int]:
    """Encrypt one pair of 32-bit words."""
    total = 0
    for _ in range(TEA_ROUNDS):
        total = (total + TEA_DELTA) & _MASK32
        v0 = (v0 + _tea_mix(v1, total, key[total & 3])) & _MASK32
        v1 = (v1 + _tea_mix(v0, total, key[(total >> 11) & 3])) & _MASK32
    return v0, v1


def tea_decrypt_block(v0: int, v1: int, key: Sequence[int]) -> tuple[int, int]:
    """Decrypt one pair of 32-bit words."""
    total = (TEA_DELTA * TEA_ROUNDS) & _MASK32
    for _ in range(TEA_ROUNDS):
        v1 = (v1 - _tea_mix(v0, total, key[(total >> 11) & 3])) & _MASK32
        v0 = (v0 - _tea_mix(v1, total, key[total & 3])) & _MASK32
        total = (total - TEA_DELTA) & _MASK32
    return v0, v1


def tea(data: bytes, password: bytes, decrypt: bool = False) -> bytes:
    """Zero-pad ``data`` to whole blocks and run every block through TEA."""
    key = tea_key(password)
    step = tea_decrypt_block if decrypt else tea_encrypt_block
    return b"".join(
        struct.pack(">2I", *step(*_split_block(block), key))
        for block in _blocks(_pad(data))
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt or decrypt a file with the Feistel network or TEA."""
    parser = argparse.ArgumentParser(
        prog="cipherkit-toy-block",
        description="Toy 64-bit block file ciphers.",
    )
    parser.add_argument("cipher", choices=["feistel", "tea"])
    parser.add_argument("mode", choices=["encrypt", "decrypt"])
    parser.add_argument("input")
    parser.add_argument("output")
    args = parser.parse_args(argv)

    try:
        answer = input("Enter password: ")
    except EOFError:
        answer = ""
    password = answer.strip().encode()
    if not password:
        print("Password cannot be empty", file=sys.stderr)
        return 1

    try:
        data = Path(args.input).read_bytes()
    except OSError as exc:
        print(f"Failed to open {args.input}: {exc}", file=sys.stderr)
        return 1

    cipher = feistel if args.cipher == "feistel" else tea
    result = cipher(data, password, decrypt=args.mode == "decrypt")

    try:
        Path(args.output).write_bytes(result)
    except OSError as exc:
        print(f"Failed to create {args.output}: {exc}", file=sys.stderr)
        return 1

    print(f"{args.mode}ed {args.input} → {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())