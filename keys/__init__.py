"""
keys/ - Private key backends.

Modules:
- backends: plaintext, OS keychain, 1Password and encrypted key specs
- codec: (de)serialization of key specs for the config document
"""

from keys.backends import (
    EncryptedKey,
    KeyBackend,
    KeychainKey,
    OnePasswordKey,
    PlaintextKey,
    derive_address,
    describe,
)
from keys.codec import key_from_dict, key_to_dict

__all__ = [
    # Backends
    "EncryptedKey",
    "KeyBackend",
    "KeychainKey",
    "OnePasswordKey",
    "PlaintextKey",
    "derive_address",
    "describe",
    # Codec
    "key_from_dict",
    "key_to_dict",
]
