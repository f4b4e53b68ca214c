"""Byte-wise toy ciphers: Caesar shift, bit rotation, repeating XOR, RC4 and a keyed S-box."""

from __future__ import annotations

import argparse
import re
import sys
from itertools import cycle
from pathlib import Path
from typing import Callable, Sequence

_MASK64 = (1 << 64) - 1
_LCG_MULTIPLIER = 6364136223846793005
_UINT_RE = re.compile(r"\+?[0-9]+")


def caesar(data: bytes, shift: int, decrypt: bool = False) -> bytes:
    """Add (or subtract, when decrypting) ``shift`` to every byte, modulo 256."""
    if not 0 <= shift <= 255:
        raise ValueError("Invalid shift value")
    delta = -shift if decrypt else shift
    table = bytes((i + delta) & 0xFF for i in range(256))
    return bytes(data).translate(table)


def rotate(data: bytes, bits: int, decrypt: bool = False) -> bytes:
    """Rotate every byte left by ``bits`` (right when decrypting)."""
    if not 0 <= bits <= 7:
        raise ValueError("Invalid rotate amount")
    left = (8 - bits) % 8 if decrypt else bits
    table = bytes(((i << left) | (i >> (8 - left))) & 0xFF for i in range(256))
    return bytes(data).translate(table)


def xor(data: bytes, key: bytes) -> bytes:
    """XOR ``data`` with ``key`` repeated; the operation is its own inverse."""
    if not key:
        raise ValueError("Password cannot be empty")
    return bytes(b ^ k for b, k in zip(data, cycle(key)))


def rc4(data: bytes, key: bytes) -> bytes:
    """Encrypt or decrypt ``data`` with the RC4 keystream for ``key``."""
    if not key:
        raise ValueError("Password cannot be empty")
    state = list(range(256))
    j = 0
    for i in range(256):
        j = (j + state[i] + key[i % len(key)]) & 0xFF
        state[i], state[j] = state[j], state[i]

    out = bytearray()
    i = j = 0
    for byte in data:
        i = (i + 1) & 0xFF
        j = (j + state[i]) & 0xFF
        state[i], state[j] = state[j], state[i]
        out.append(byte ^ state[(state[i] + state[j]) & 0xFF])
    return bytes(out)


def derive_seed(key: bytes) -> int:
    """Fold the key into a 64-bit seed (``seed * 31 + byte``, wrapping)."""
    seed = 0
    for byte in key:
        seed = (seed * 31 + byte) & _MASK64
    return seed


def build_sboxes(key: bytes) -> tuple[bytes, bytes]:
    """Return a key-dependent byte permutation and its inverse."""
    sbox = list(range(256))
    state = derive_seed(key)
    for i in range(255, 0, -1):
        state = (state * _LCG_MULTIPLIER + 1) & _MASK64
        j = (state >> 33) % (i + 1)
        sbox[i], sbox[j] = sbox[j], sbox[i]
    inverse = [0] * 256
    for index, value in enumerate(sbox):
        inverse[value] = index
    return bytes(sbox), bytes(inverse)


def substitute(data: bytes, key: bytes, decrypt: bool = False) -> bytes:
    """Replace every byte through the key's S-box (or its inverse)."""
    sbox, inverse = build_sboxes(key)
    return bytes(data).translate(inverse if decrypt else sbox)


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except EOFError:
        return ""


def _ask_password() -> bytes:
    key = _ask("Enter password: ").strip().encode()
    if not key:
        raise ValueError("Password cannot be empty")
    return key


def _ask_uint(prompt: str, limit: int, message: str) -> int:
    text = _ask(prompt).strip()
    if not _UINT_RE.fullmatch(text) or int(text) > limit:
        raise ValueError(message)
    return int(text)


def _transform(cipher: str, decrypt: bool) -> Callable[[bytes], bytes]:
    if cipher == "caesar":
        shift = _ask_uint("Enter shift amount (0-255): ", 255, "Invalid shift value")
        return lambda data: caesar(data, shift, decrypt)
    if cipher == "rotate":
        bits = _ask_uint("Enter rotate amount (0–7): ", 7, "Invalid rotate amount")
        return lambda data: rotate(data, bits, decrypt)
    key = _ask_password()
    if cipher == "xor":
        return lambda data: xor(data, key)
    if cipher == "rc4":
        return lambda data: rc4(data, key)
    return lambda data: substitute(data, key, decrypt)


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt or decrypt a file with one of the byte-wise toy ciphers."""
    parser = argparse.ArgumentParser(
        prog="cipherkit-toy-stream",
        description="Byte-wise toy file ciphers.",
    )
    parser.add_argument("cipher", choices=["caesar", "rotate", "xor", "rc4", "sub"])
    parser.add_argument("mode", choices=["encrypt", "decrypt"])
    parser.add_argument("input")
    parser.add_argument("output")
    args = parser.parse_args(argv)

    try:
        transform = _transform(args.cipher, args.mode == "decrypt")
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        data = Path(args.input).read_bytes()
    except OSError as exc:
        print(f"Failed to open {args.input}: {exc}", file=sys.stderr)
        return 1

    try:
        Path(args.output).write_bytes(transform(data))
    except OSError as exc:
        print(f"Failed to create {args.output}: {exc}", file=sys.stderr)
        return 1

    print(f"{args.mode}ed {args.input} → {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())