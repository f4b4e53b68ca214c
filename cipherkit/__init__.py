"""File encryption tools: toy ciphers, key-file ciphers, password-based AEAD and age."""

__version__ = "0.1.0"