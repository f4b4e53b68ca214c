"""Password-based in-place file encryption with Argon2id and a choice of AEAD schemes.

Every file is written as ``salt (16) || nonce || ciphertext || tag (16)``; the
key is Argon2id (19 MiB, 2 passes, 1 lane) of the password over the salt.
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Sequence

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError
from nacl.pwhash import argon2id

from cipherkit.eax import AuthenticationError, Eax
from cipherkit.kuznyechik import Kuznyechik
from cipherkit.overwrite import _open as _siv_open
from cipherkit.overwrite import _seal as _siv_seal
from cipherkit.serpent import Serpent

SALT_SIZE = 16
KEY_SIZE = 32
TAG_SIZE = 16

ARGON2_MEMORY_KIB = 19456
ARGON2_PASSES = 2


class Scheme(Enum):
    """The authenticated ciphers a file can be sealed with."""

    AES_GCM_SIV = "aes"
    CAMELLIA_EAX = "camellia"
    KUZNYECHIK_EAX = "kuznyechik"
    SERPENT_EAX = "serpent"
    XCHACHA20_POLY1305 = "xchacha"

    @property
    def nonce_size(self) -> int:
        """Length of the random nonce stored after the salt."""
        return _WORDING[self].nonce_size

    @property
    def header_size(self) -> int:
        """Length of ``salt || nonce``."""
        return SALT_SIZE + self.nonce_size


class _Wording(NamedTuple):
    nonce_size: int
    too_short: str
    failed: str
    in_place: bool


_WORDING = {
    Scheme.AES_GCM_SIV: _Wording(
        12,
        "File too short to contain salt and nonce",
        "Decryption failed. Wrong password or corrupted file.",
        True,
    ),
    Scheme.CAMELLIA_EAX: _Wording(
        16,
        "Invalid file format",
        "Decryption failed: wrong password or corrupted file",
        False,
    ),
    Scheme.KUZNYECHIK_EAX: _Wording(
        16,
        "Invalid file format",
        "Decryption failed: wrong password or corrupted file",
        False,
    ),
    Scheme.SERPENT_EAX: _Wording(
        16,
        "File too short",
        "Decryption failed: wrong password or corrupted file",
        True,
    ),
    Scheme.XCHACHA20_POLY1305: _Wording(
        24,
        "File too short to contain salt and nonce",
        "Decryption failed. Wrong password or corrupted file.",
        True,
    ),
}


class DecryptionError(ValueError):
    """Raised when data cannot be decrypted: too short, wrong password or corrupted."""


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive the 32-byte key from ``password`` and a 16-byte ``salt`` with Argon2id."""
    salt = bytes(salt)
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")
    return argon2id.kdf(
        KEY_SIZE,
        password.encode("utf-8"),
        salt,
        opslimit=ARGON2_PASSES,
        memlimit=ARGON2_MEMORY_KIB * 1024,
    )


def _camellia_block(key: bytes):
    def encrypt_block(block: bytes) -> bytes:
        encryptor = Cipher(algorithms.Camellia(key), modes.ECB()).encryptor()
        return encryptor.update(block) + encryptor.finalize()

    return encrypt_block


def _eax(scheme: Scheme, key: bytes) -> Eax:
    if scheme is Scheme.CAMELLIA_EAX:
        return Eax(_camellia_block(key), 16)
    if scheme is Scheme.KUZNYECHIK_EAX:
        return Eax(Kuznyechik(key).encrypt_block, 16)
    return Eax(Serpent(key).encrypt_block, 16)


def _seal(scheme: Scheme, key: bytes, nonce: bytes, data: bytes) -> bytes:
    if scheme is Scheme.AES_GCM_SIV:
        return _siv_seal(key, nonce, data)
    if scheme is Scheme.XCHACHA20_POLY1305:
        return crypto_aead_xchacha20poly1305_ietf_encrypt(data, None, nonce, key)
    return _eax(scheme, key).encrypt(nonce, data)


def _open(scheme: Scheme, key: bytes, nonce: bytes, sealed: bytes) -> bytes:
    if scheme is Scheme.AES_GCM_SIV:
        return _siv_open(key, nonce, sealed)
    if scheme is Scheme.XCHACHA20_POLY1305:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(sealed, None, nonce, key)
    return _eax(scheme, key).decrypt(nonce, sealed)


def encrypt_bytes(scheme: Scheme, data: bytes, password: str) -> bytes:
    """Return ``salt || nonce || ciphertext || tag`` under fresh random salt and nonce."""
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(scheme.nonce_size)
    key = derive_key(password, salt)
    return salt + nonce + _seal(scheme, key, nonce, bytes(data))


def decrypt_bytes(scheme: Scheme, data: bytes, password: str) -> bytes:
    """Decrypt data produced by :func:`encrypt_bytes` with the same scheme."""
    data = bytes(data)
    wording = _WORDING[scheme]
    if len(data) < scheme.header_size:
        raise DecryptionError(wording.too_short)
    salt = data[:SALT_SIZE]
    nonce = data[SALT_SIZE:scheme.header_size]
    sealed = data[scheme.header_size:]
    key = derive_key(password, salt)
    try:
        return _open(scheme, key, nonce, sealed)
    except (AuthenticationError, CryptoError, ValueError) as exc:
        raise DecryptionError(wording.failed) from exc


def _replace(filename: str | os.PathLike, content: bytes) -> None:
    tmp_path = Path(f"{os.fspath(filename)}.tmp")
    tmp_path.write_bytes(content)
    os.replace(tmp_path, filename)


def encrypt_file(scheme: Scheme, filename: str | os.PathLike, password: str) -> None:
    """Encrypt ``filename`` in place through a temporary file."""
    data = Path(filename).read_bytes()
    _replace(filename, encrypt_bytes(scheme, data, password))


def decrypt_file(scheme: Scheme, filename: str | os.PathLike, password: str) -> None:
    """Decrypt ``filename`` in place through a temporary file."""
    data = Path(filename).read_bytes()
    _replace(filename, decrypt_bytes(scheme, data, password))


def main(argv: Sequence[str] | None = None) -> int:
    """Encrypt (E) or decrypt (D) a file in place with a password."""
    args = list(sys.argv[1:] if argv is None else argv)
    schemes = "|".join(scheme.value for scheme in Scheme)
    if len(args) != 4:
        print(
            f"Usage:\n  cipherkit-paranoid {schemes} E|D <filename> <password>",
            file=sys.stderr,
        )
        return 1

    scheme_name, command, filename, password = args
    try:
        scheme = Scheme(scheme_name.lower())
    except ValueError:
        print(f"Unknown scheme '{scheme_name}'. Use one of {schemes}.", file=sys.stderr)
        return 1

    command = command.upper()
    if command not in ("E", "D"):
        print(
            f"Unknown command '{command}'. Use E (encrypt) or D (decrypt).",
            file=sys.stderr,
        )
        return 1

    try:
        if command == "E":
            encrypt_file(scheme, filename, password)
        else:
            decrypt_file(scheme, filename, password)
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1

    action = "Encrypted" if command == "E" else "Decrypted"
    suffix = " (in-place)" if _WORDING[scheme].in_place else ""
    print(f"{action}{suffix}: {filename}")
    return 0


if __name__ == "__main__":
    sys.exit(main())