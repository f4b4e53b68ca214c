# cipherkit

Small file encryption tools and the cipher primitives behind them, usable
from the command line and as a Python library.

Three families are included:

* **Toy ciphers** (`cipherkit.toy_stream`, `cipherkit.toy_block`): Caesar
  byte shift, bit rotation, repeating-key XOR, RC4, a key-derived byte
  substitution box, a 16-round Feistel network and TEA. They are for
  learning and experimenting only and give no real protection.
* **Key-file tools** (`cipherkit.serpent`, `cipherkit.overwrite`,
  `cipherkit.threefish`): Serpent-CBC with PKCS#7 padding and an
  HMAC-SHA256 tag; AES-256-GCM-SIV that toggles a file between plain and
  encrypted by looking for the header `AESGCM-SIVv1`; Threefish-512 and
  Threefish-1024 in counter mode with an HMAC-SHA256 tag. Each reads its
  key from `key.key` in the current directory.
* **Password tools** (`cipherkit.paranoid`, `cipherkit.age`): an
  Argon2id-derived key with AES-256-GCM-SIV, Camellia-256-EAX,
  Kuznyechik-EAX, Serpent-EAX or XChaCha20-Poly1305; and passphrase
  encryption in the age v1 file format (scrypt recipient).

## Installation

```
pip install cipherkit
```

For the test suite:

```
pip install "cipherkit[test]"
pytest
```

## Command-line tools

| Command                  | Arguments                                   | What it does                                                   |
|--------------------------|---------------------------------------------|----------------------------------------------------------------|
| `cipherkit-toy-stream`   | `caesar\|rotate\|xor\|rc4\|sub encrypt\|decrypt INPUT OUTPUT` | Byte-wise toy ciphers; prompts for the shift, rotation or password |
| `cipherkit-toy-block`    | `feistel\|tea encrypt\|decrypt INPUT OUTPUT` | Toy 64-bit block ciphers; prompts for a password               |
| `cipherkit-serpent`      | `E\|D FILE`                                 | Serpent-CBC + HMAC in place, 32-byte `key.key`                 |
| `cipherkit-overwrite`    | `FILE`                                      | AES-256-GCM-SIV toggle in place, 32-byte `key.key`             |
| `cipherkit-threefish`    | `encrypt\|decrypt PATH`                     | Threefish-1024 CTR + HMAC in place, 160-byte `key.key`         |
| `cipherkit-threefish512` | `encrypt\|decrypt PATH`                     | Threefish-512 CTR + HMAC in place, 96-byte `key.key`           |
| `cipherkit-paranoid`     | `aes\|camellia\|kuznyechik\|serpent\|xchacha E\|D FILE PASSWORD` | Argon2id password AEAD in place                 |
| `cipherkit-age`          | `enc\|dec INPUT OUTPUT`                     | age passphrase encryption; prompts for the passphrase          |

Examples:

```
cipherkit-toy-stream rc4 encrypt notes.txt notes.rc4
cipherkit-toy-block tea decrypt notes.tea notes.txt
cipherkit-serpent E notes.txt
cipherkit-overwrite notes.txt
cipherkit-threefish encrypt notes.txt
cipherkit-threefish512 decrypt notes.txt
cipherkit-paranoid xchacha E notes.txt password
cipherkit-age enc notes.txt notes.age
```

`cipherkit-toy-stream`, `cipherkit-toy-block`, `cipherkit-threefish`,
`cipherkit-threefish512` and `cipherkit-age` also accept `--help`.

For the Threefish tools `key.key` holds the block-cipher key (128 or 64
bytes) followed by a 32-byte HMAC key. The Serpent tool derives its HMAC key
as the SHA-256 digest of the 32-byte key.

The in-place tools write the result to a temporary file next to the
original and then rename it over the original; when decryption or
authentication fails, nothing is written and the input stays as it was.
`cipherkit-age enc` asks for the passphrase twice and stops if the two do
not match.

## Library use

Toy ciphers work on `bytes`:

```python
from cipherkit import toy_stream, toy_block

data = b"attack at dawn"
password = b"password"

shifted = toy_stream.caesar(data, 3, False)
assert toy_stream.caesar(shifted, 3, True) == data

rotated = toy_stream.rotate(data, 5, False)
assert toy_stream.rotate(rotated, 5, True) == data

assert toy_stream.xor(toy_stream.xor(data, password), password) == data
assert toy_stream.rc4(toy_stream.rc4(data, password), password) == data

sub = toy_stream.substitute(data, password, False)
assert toy_stream.substitute(sub, password, True) == data

# The block ciphers zero-pad the input to a multiple of 8 bytes.
ct = toy_block.tea(data, password, False)
assert toy_block.tea(ct, password, True).rstrip(b"\0") == data
```

`caesar` takes a shift of 0 to 255 and `rotate` 0 to 7 bits; `xor`, `rc4`
and the block ciphers raise `ValueError` for an empty password.

Key-file encryption on bytes:

```python
import os
from cipherkit import serpent, overwrite, threefish

key = os.urandom(32)
blob = serpent.encrypt_data(b"hello", key, serpent.derive_hmac_key(key))
assert serpent.decrypt_data(blob, key, serpent.derive_hmac_key(key)) == b"hello"

blob = overwrite.encrypt_bytes(b"hello", key)
assert overwrite.is_encrypted(blob)
assert overwrite.decrypt_bytes(blob, key) == b"hello"

variant = threefish.Variant.THREEFISH_512
tf_key, mac_key = os.urandom(variant.block_size), os.urandom(32)
blob = threefish.encrypt_bytes(variant, b"hello", tf_key, mac_key)
assert threefish.decrypt_bytes(variant, blob, tf_key, mac_key) == b"hello"
```

These raise `ValueError` on a bad tag, wrong key length or malformed input.
The file-level helpers are `serpent.process_file`, `overwrite.toggle_file`
(returns `True` when it encrypted) and `threefish.process`.

Password-based AEAD with `cipherkit.paranoid`:

```python
from cipherkit import paranoid

password = "password"
scheme = paranoid.Scheme.XCHACHA20_POLY1305
blob = paranoid.encrypt_bytes(scheme, b"hello", password)
assert paranoid.decrypt_bytes(scheme, blob, password) == b"hello"
```

The output is `salt (16) || nonce || ciphertext || tag (16)`; the nonce is
12 bytes for AES-GCM-SIV, 16 for the EAX schemes and 24 for
XChaCha20-Poly1305. The key is Argon2id (19 MiB, 2 passes) of the password
over the salt, available as `paranoid.derive_key`. A wrong password, a
tampered file or a too-short input raises `paranoid.DecryptionError`.
`paranoid.encrypt_file` and `paranoid.decrypt_file` work in place.

age passphrase encryption:

```python
from cipherkit import age

password = "password"
blob = age.encrypt(b"hello", password, 10)
assert age.decrypt(blob, password) == b"hello"
```

The third argument is the scrypt work factor (log2 of N, 1 to 22, default
18). `age.decrypt` raises `age.AgeError` on a malformed file or a wrong
passphrase. `age.encrypt_file` and `age.decrypt_file` write through a
temporary file and prompt with `age.read_passphrase` when no passphrase is
passed.

The block ciphers are available as classes: `cipherkit.serpent.Serpent`,
`cipherkit.threefish.Threefish` (encryption only) and
`cipherkit.kuznyechik.Kuznyechik`. `cipherkit.eax.Eax` turns any 8- or
16-byte block-encryption function into an EAX authenticated cipher and
raises `cipherkit.eax.AuthenticationError` when a tag does not verify.

## What it does not do

* No command creates `key.key`; fill it with random bytes of the right
  length yourself.
* `cipherkit-age` handles only passphrase (scrypt) files, not files
  encrypted to public-key recipients.
* The in-place and key-file tools read the whole file into memory.
* There is no tool for computing hashes.