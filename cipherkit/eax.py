"""EAX authenticated encryption over any 64- or 128-bit block cipher."""

from __future__ import annotations

import hmac
from typing import Callable

# Reduction constants for doubling in GF(2^n), keyed by block size in bytes.
_REDUCTION = {8: 0x1B, 16: 0x87}


class AuthenticationError(ValueError):
    """Raised when a ciphertext's tag does not verify."""


class Eax:
    """EAX mode built on a block encryption function.

    ``encrypt_block`` takes and returns one block of ``block_size`` bytes.
    The tag is a full block long.
    """

    def __init__(self, encrypt_block: Callable[[bytes], bytes], block_size: int = 16) -> None:
        if block_size not in _REDUCTION:
            raise ValueError(f"block size must be 8 or 16 bytes, got {block_size}")
        self._encrypt = encrypt_block
        self._size = block_size
        self._bits = block_size * 8
        self._mask = (1 << self._bits) - 1
        self._reduction = _REDUCTION[block_size]
        self._pad_b = self._double(self._cipher(0))
        self._pad_p = self._double(self._pad_b)

    @property
    def tag_size(self) -> int:
        """Length of the authentication tag in bytes."""
        return self._size

    def _cipher(self, value: int) -> int:
        out = bytes(self._encrypt(value.to_bytes(self._size, "big")))
        if len(out) != self._size:
            raise ValueError(
                f"block cipher returned {len(out)} bytes, expected {self._size}"
            )
        return int.from_bytes(out, "big")

    def _double(self, value: int) -> int:
        value <<= 1
        if value >> self._bits:
            value = (value & self._mask) ^ self._reduction
        return value

    def _omac(self, tweak: int, data: bytes) -> int:
        """CMAC of ``[tweak]_n || data``."""
        size = self._size
        if not data:
            return self._cipher(tweak ^ self._pad_b)
        state = self._cipher(tweak)
        full, remainder = divmod(len(data), size)
        last_start = (full - 1) * size if remainder == 0 else full * size
        for start in range(0, last_start, size):
            state = self._cipher(state ^ int.from_bytes(data[start:start + size], "big"))
        last = data[last_start:]
        if len(last) == size:
            return self._cipher(state ^ int.from_bytes(last, "big") ^ self._pad_b)
        padded = last + b"\x80" + bytes(size - len(last) - 1)
        return self._cipher(state ^ int.from_bytes(padded, "big") ^ self._pad_p)

    def _ctr(self, counter: int, data: bytes) -> bytes:
        size = self._size
        pieces = []
        for start in range(0, len(data), size):
            chunk = data[start:start + size]
            stream = self._cipher(counter).to_bytes(size, "big")[:len(chunk)]
            mixed = int.from_bytes(chunk, "big") ^ int.from_bytes(stream, "big")
            pieces.append(mixed.to_bytes(len(chunk), "big"))
            counter = (counter + 1) & self._mask
        return b"".join(pieces)

    def _tag(self, nonce_mac: int, header: bytes, ciphertext: bytes) -> bytes:
        value = nonce_mac ^ self._omac(1, header) ^ self._omac(2, ciphertext)
        return value.to_bytes(self._size, "big")

    def encrypt(self, nonce: bytes, plaintext: bytes, header: bytes = b"") -> bytes:
        """Return ``ciphertext || tag``."""
        nonce_mac = self._omac(0, bytes(nonce))
        ciphertext = self._ctr(nonce_mac, bytes(plaintext))
        return ciphertext + self._tag(nonce_mac, bytes(header), ciphertext)

    def decrypt(self, nonce: bytes, ciphertext: bytes, header: bytes = b"") -> bytes:
        """Verify the tag of ``ciphertext || tag`` and return the plaintext."""
        data = bytes(ciphertext)
        if len(data) < self._size:
            raise AuthenticationError("ciphertext is shorter than the tag")
        body, tag = data[:-self._size], data[-self._size:]
        nonce_mac = self._omac(0, bytes(nonce))
        if not hmac.compare_digest(self._tag(nonce_mac, bytes(header), body), tag):
            raise AuthenticationError("authentication failed")
        return self._ctr(nonce_mac, body)