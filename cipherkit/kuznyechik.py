"""The Kuznyechik 128-bit block cipher (GOST R 34.12-2015)."""

from __future__ import annotations

from functools import reduce
from operator import xor

BLOCK_SIZE = 16
KEY_SIZE = 32

_PI = bytes((
    252, 238, 221, 17, 207, 110, 49, 22, 251, 196, 250, 218, 35, 197, 4, 77,
    233, 119, 240, 219, 147, 46, 153, 186, 23, 54, 241, 187, 20, 205, 95, 193,
    249, 24, 101, 90, 226, 92, 239, 33, 129, 28, 60, 66, 139, 1, 142, 79,
    5, 132, 2, 174, 227, 106, 143, 160, 6, 11, 237, 152, 127, 212, 211, 31,
    235, 52, 44, 81, 234, 200, 72, 171, 242, 42, 104, 162, 253, 58, 206, 204,
    181, 112, 14, 86, 8, 12, 118, 18, 191, 114, 19, 71, 156, 183, 93, 135,
    21, 161, 150, 41, 16, 123, 154, 199, 243, 145, 120, 111, 157, 158, 178, 177,
    50, 117, 25, 61, 255, 53, 138, 126, 109, 84, 198, 128, 195, 189, 13, 87,
    223, 245, 36, 169, 62, 168, 67, 201, 215, 121, 214, 246, 124, 34, 185, 3,
    224, 15, 236, 222, 122, 148, 176, 188, 220, 232, 40, 80, 78, 51, 10, 74,
    167, 151, 96, 115, 30, 0, 98, 68, 26, 184, 56, 130, 100, 159, 38, 65,
    173, 69, 70, 146, 39, 94, 85, 47, 140, 163, 165, 125, 105, 213, 149, 59,
    7, 88, 179, 64, 134, 172, 29, 247, 48, 55, 107, 228, 136, 217, 231, 137,
    225, 27, 131, 73, 76, 63, 248, 254, 141, 83, 170, 144, 202, 216, 133, 97,
    32, 113, 103, 164, 45, 43, 9, 91, 203, 155, 37, 208, 190, 229, 108, 82,
    89, 166, 116, 210, 230, 244, 180, 192, 209, 102, 175, 194, 57, 75, 99, 182,
))
_PI_INV = bytes(_PI.index(v) for v in range(256))

_COEFFICIENTS = (148, 32, 133, 16, 194, 192, 1, 251, 1, 192, 194, 16, 133, 32, 148, 1)


def _gf_mul(a: int, b: int) -> int:
    """Multiply in GF(2^8) modulo x^8 + x^7 + x^6 + x + 1."""
    result = 0
    while b:
        if b & 1:
            result ^= a
        a <<= 1
        if a & 0x100:
            a ^= 0x1C3
        b >>= 1
    return result


def _l(values: list[int]) -> int:
    return reduce(xor, (_gf_mul(c, v) for c, v in zip(_COEFFICIENTS, values)), 0)


def _r(values: list[int]) -> list[int]:
    return [_l(values)] + values[:15]


def _r_inv(values: list[int]) -> list[int]:
    rest = values[1:]
    return rest + [_l(rest + values[:1])]


def _apply_rounds(step, value: int) -> int:
    values = list(value.to_bytes(BLOCK_SIZE, "big"))
    for _ in range(16):
        values = step(values)
    return int.from_bytes(bytes(values), "big")


def _linear_table(step) -> list[list[int]]:
    """Per-position lookup tables for a GF(2)-linear map, built from its bit basis."""
    table = []
    for position in range(BLOCK_SIZE):
        shift = 8 * (BLOCK_SIZE - 1 - position)
        basis = [_apply_rounds(step, (1 << bit) << shift) for bit in range(8)]
        row = [0] * 256
        for value in range(1, 256):
            low = (value & -value).bit_length() - 1
            row[value] = row[value & (value - 1)] ^ basis[low]
        table.append(row)
    return table


_LINEAR = _linear_table(_r)
_INV_LINEAR = _linear_table(_r_inv)
_SUB_LINEAR = [[row[_PI[v]] for v in range(256)] for row in _LINEAR]


def _apply_table(table: list[list[int]], value: int) -> int:
    result = 0
    for position, row in enumerate(table):
        result ^= row[(value >> (8 * (BLOCK_SIZE - 1 - position))) & 0xFF]
    return result


def _inv_sub(value: int) -> int:
    return int.from_bytes(value.to_bytes(BLOCK_SIZE, "big").translate(_PI_INV), "big")


_CONSTANTS = [_apply_table(_LINEAR, i) for i in range(1, 33)]


class Kuznyechik:
    """Kuznyechik with a 32-byte key and 16-byte blocks."""

    block_size = BLOCK_SIZE
    key_size = KEY_SIZE

    def __init__(self, key: bytes) -> None:
        key = bytes(key)
        if len(key) != KEY_SIZE:
            raise ValueError(f"Kuznyechik key must be {KEY_SIZE} bytes, got {len(key)}")
        k1 = int.from_bytes(key[:BLOCK_SIZE], "big")
        k2 = int.from_bytes(key[BLOCK_SIZE:], "big")
        round_keys = [k1, k2]
        for group in range(4):
            for constant in _CONSTANTS[8 * group:8 * group + 8]:
                k1, k2 = _apply_table(_SUB_LINEAR, k1 ^ constant) ^ k2, k1
            round_keys.extend((k1, k2))
        self._round_keys = round_keys

    @staticmethod
    def _load(block: bytes) -> int:
        block = bytes(block)
        if len(block) != BLOCK_SIZE:
            raise ValueError(f"block must be {BLOCK_SIZE} bytes, got {len(block)}")
        return int.from_bytes(block, "big")

    def encrypt_block(self, block: bytes) -> bytes:
        """Encrypt one 16-byte block."""
        value = self._load(block)
        for round_key in self._round_keys[:9]:
            value = _apply_table(_SUB_LINEAR, value ^ round_key)
        return (value ^ self._round_keys[9]).to_bytes(BLOCK_SIZE, "big")

    def decrypt_block(self, block: bytes) -> bytes:
        """Decrypt one 16-byte block."""
        value = self._load(block) ^ self._round_keys[9]
        for round_key in reversed(self._round_keys[:9]):
            value = _inv_sub(_apply_table(_INV_LINEAR, value)) ^ round_key
        return value.to_bytes(BLOCK_SIZE, "big")