[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cipherkit"
version = "0.1.0"
description = "File encryption tools: toy ciphers, Serpent, AES-GCM-SIV, Threefish, Argon2-based AEAD schemes and age passphrase encryption"
requires-python = ">=3.10"
keywords = [
    "encryption",
    "cryptography",
    "cipher",
    "serpent",
    "threefish",
    "kuznyechik",
    "camellia",
    "eax",
    "aes-gcm-siv",
    "xchacha20",
    "argon2",
    "age",
    "rc4",
    "tea",
    "feistel",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Utilities",
]
dependencies = [
    "cryptography",
    "pynacl",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cipherkit-toy-stream = "cipherkit.toy_stream:main"
cipherkit-toy-block = "cipherkit.toy_block:main"
cipherkit-serpent = "cipherkit.serpent:main"
cipherkit-overwrite = "cipherkit.overwrite:main"
cipherkit-threefish = "cipherkit.threefish:main"
cipherkit-threefish512 = "cipherkit.threefish:main512"
cipherkit-paranoid = "cipherkit.paranoid:main"
cipherkit-age = "cipherkit.age:main"

[tool.hatch.build.targets.wheel]
packages = ["cipherkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
