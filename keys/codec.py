# PATH: keys/codec.py
"""
keys/codec.py - KeySpec <-> config document entries.

This is the only place that branches on the concrete key backend.
Entries are tagged with "type":

    {"type": "PrivateKey", "value": "0x..."}
    {"type": "Keychain", "service": "chainz", "username": "deployer"}
    {"type": "OnePassword", "vault": "dev", "item": "deployer", "field": "password"}
    {"type": "EncryptedKey", "value": "<b64>", "nonce": "<b64>"}
"""

from typing import Any, Callable, Dict

from core.constants import KeyType
from core.exceptions import FormatError
from keys.backends import (
    DEFAULT_KEYCHAIN_SERVICE,
    EncryptedKey,
    KeyBackend,
    KeychainKey,
    OnePasswordKey,
    PlaintextKey,
)


def key_to_dict(key: KeyBackend) -> Dict[str, Any]:
    """Serialize a key spec."""
    if isinstance(key, PlaintextKey):
        return {"type": KeyType.PRIVATE_KEY.value, "value": key.value}
    if isinstance(key, KeychainKey):
        return {
            "type": KeyType.KEYCHAIN.value,
            "service": key.service,
            "username": key.username,
        }
    if isinstance(key, OnePasswordKey):
        data = {"type": KeyType.ONE_PASSWORD.value, "vault": key.vault, "item": key.item}
        if key.field_name:
            data["field"] = key.field_name
        return data
    if isinstance(key, EncryptedKey):
        return {"type": KeyType.ENCRYPTED_KEY.value, "value": key.value, "nonce": key.nonce}
    raise FormatError(f"Unsupported key backend: {type(key).__name__}")


_DECODERS: Dict[KeyType, Callable[[Dict[str, Any]], KeyBackend]] = {
    KeyType.PRIVATE_KEY: lambda d: PlaintextKey(value=d["value"]),
    KeyType.KEYCHAIN: lambda d: KeychainKey(
        username=d["username"],
        service=d.get("service") or DEFAULT_KEYCHAIN_SERVICE,
    ),
    KeyType.ONE_PASSWORD: lambda d: OnePasswordKey(
        vault=d["vault"],
        item=d["item"],
        field_name=d.get("field"),
    ),
    KeyType.ENCRYPTED_KEY: lambda d: EncryptedKey(value=d["value"], nonce=d["nonce"]),
}


def key_from_dict(data: Dict[str, Any]) -> KeyBackend:
    """
    Deserialize a key spec.

    Raises:
        FormatError: unknown type tag or missing field
    """
    if not isinstance(data, dict):
        raise FormatError("Key entry must be an object")
    try:
        kind = KeyType(data.get("type"))
    except ValueError:
        raise FormatError(f"Unknown key type: {data.get('type')!r}") from None
    try:
        return _DECODERS[kind](data)
    except KeyError as e:
        raise FormatError(f"Key entry of type {kind.value} is missing field {e}") from None
