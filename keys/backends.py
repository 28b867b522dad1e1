# PATH: keys/backends.py
"""
keys/backends.py - Private key backends.

Every backend exposes the same two operations:
- secret(): fetch the raw private key (may touch the OS keychain,
  the 1Password CLI or prompt for a password)
- address(): EIP-55 checksummed address derived from secret(), no network

Callers never branch on the concrete backend; only keys/codec.py does,
when (de)serializing. Secrets are fetched fresh on every call.
"""

import base64
import binascii
import getpass
import hashlib
import os
import subprocess
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Protocol

import keyring
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from eth_account import Account
from keyring.errors import KeyringError

from core.constants import (
    AES_GCM_NONCE_BYTES,
    BACKEND_ENCRYPTED,
    BACKEND_KEYCHAIN,
    BACKEND_ONE_PASSWORD,
    BACKEND_PLAINTEXT,
    ONE_PASSWORD_CLI,
)
from core.exceptions import (
    BackendUnavailable,
    FormatError,
    KeyDecryptionError,
    KeyNotFound,
)
from core.logging import get_logger
from config import load_defaults

logger = get_logger("chainz.keys")

DEFAULT_KEYCHAIN_SERVICE = "chainz"


class KeyBackend(Protocol):
    """Shared capability of every key spec."""
    backend: ClassVar[str]

    def secret(self) -> str: ...

    def address(self) -> str: ...


def derive_address(private_key: str, backend: str = BACKEND_PLAINTEXT) -> str:
    """
    Checksummed address for a hex private key (with or without 0x).

    The key itself never appears in the raised error.
    """
    try:
        return Account.from_key(private_key.strip()).address
    except Exception:
        raise FormatError(
            f"Invalid private key material from {backend} backend",
            {"backend": backend},
        ) from None


def prompt_password(prompt: str) -> str:
    """Read a password from the terminal without echo."""
    return getpass.getpass(prompt)


# =============================================================================
# PLAINTEXT
# =============================================================================

@dataclass(frozen=True)
class PlaintextKey:
    """Raw private key stored in the config document."""
    value: str = field(repr=False)
    backend: ClassVar[str] = BACKEND_PLAINTEXT

    def secret(self) -> str:
        return self.value

    def address(self) -> str:
        return derive_address(self.secret(), self.backend)


# =============================================================================
# OS KEYCHAIN
# =============================================================================

@dataclass(frozen=True)
class KeychainKey:
    """Private key held by the OS keychain under (service, username)."""
    username: str
    service: str = DEFAULT_KEYCHAIN_SERVICE
    backend: ClassVar[str] = BACKEND_KEYCHAIN

    def secret(self) -> str:
        try:
            value = keyring.get_password(self.service, self.username)
        except KeyringError as e:
            raise BackendUnavailable(
                self.backend,
                f"OS keychain is not accessible: {e}",
                {"service": self.service},
            ) from e
        if value is None:
            raise KeyNotFound(
                self.backend,
                f"No keychain entry for {self.service}/{self.username}",
                {"service": self.service, "username": self.username},
            )
        return value

    def address(self) -> str:
        return derive_address(self.secret(), self.backend)

    def store(self, secret: str) -> None:
        """Write secret into the keychain (overwrites an existing entry)."""
        derive_address(secret, self.backend)
        try:
            keyring.set_password(self.service, self.username, secret)
        except KeyringError as e:
            raise BackendUnavailable(
                self.backend,
                f"OS keychain is not accessible: {e}",
                {"service": self.service},
            ) from e
        logger.info(
            "Stored key in keychain",
            extra={"context": {"service": self.service, "username": self.username}},
        )


# =============================================================================
# 1PASSWORD
# =============================================================================

@dataclass(frozen=True)
class OnePasswordKey:
    """Private key read through the 1Password CLI (`op read`)."""
    vault: str
    item: str
    field_name: Optional[str] = None
    backend: ClassVar[str] = BACKEND_ONE_PASSWORD

    def __post_init__(self):
        if not self.vault or not self.item:
            raise FormatError("1Password key needs both a vault and an item")

    @property
    def reference(self) -> str:
        ref = f"op://{self.vault}/{self.item}"
        if self.field_name:
            ref += f"/{self.field_name}"
        return ref

    def secret(self) -> str:
        timeout = float(load_defaults()["onepassword_timeout_seconds"])
        try:
            proc = subprocess.run(
                [ONE_PASSWORD_CLI, "read", self.reference],
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise BackendUnavailable(
                self.backend,
                f"`{ONE_PASSWORD_CLI} read` timed out after {timeout:g}s",
            ) from None
        except OSError as e:
            raise BackendUnavailable(
                self.backend,
                f"Could not run `{ONE_PASSWORD_CLI}`: {e}",
            ) from e

        if proc.returncode != 0:
            raise BackendUnavailable(
                self.backend,
                f"`{ONE_PASSWORD_CLI} read` failed: {(proc.stderr or '').strip()}",
                {"returncode": proc.returncode},
            )

        # Fail closed: stdout is never echoed back on ambiguity
        lines = [line.strip() for line in (proc.stdout or "").strip().splitlines()]
        if len(lines) != 1 or not lines[0]:
            raise BackendUnavailable(
                self.backend,
                f"Ambiguous response from `{ONE_PASSWORD_CLI} read` for {self.reference}",
            )
        return lines[0]

    def address(self) -> str:
        return derive_address(self.secret(), self.backend)


# =============================================================================
# PASSWORD-ENCRYPTED
# =============================================================================

def _derive_aes_key(password: str) -> bytes:
    return hashlib.sha256(password.encode("utf-8")).digest()


@dataclass(frozen=True)
class EncryptedKey:
    """AES-256-GCM encrypted private key, decrypted with a prompted password."""
    value: str = field(repr=False)
    nonce: str
    backend: ClassVar[str] = BACKEND_ENCRYPTED

    @classmethod
    def encrypt(cls, secret: str, password: str) -> "EncryptedKey":
        derive_address(secret, cls.backend)
        nonce = os.urandom(AES_GCM_NONCE_BYTES)
        ciphertext = AESGCM(_derive_aes_key(password)).encrypt(nonce, secret.encode("utf-8"), None)
        return cls(
            value=base64.b64encode(ciphertext).decode("ascii"),
            nonce=base64.b64encode(nonce).decode("ascii"),
        )

    def decrypt(self, password: str) -> str:
        try:
            nonce = base64.b64decode(self.nonce, validate=True)
            ciphertext = base64.b64decode(self.value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError("Encrypted key is not valid base64", {"backend": self.backend}) from e
        try:
            plaintext = AESGCM(_derive_aes_key(password)).decrypt(nonce, ciphertext, None)
        except (InvalidTag, ValueError):
            raise KeyDecryptionError(self.backend, "Failed to decrypt (wrong password?)") from None
        return plaintext.decode("utf-8")

    def secret(self) -> str:
        return self.decrypt(prompt_password("Enter decryption password: "))

    def address(self) -> str:
        return derive_address(self.secret(), self.backend)


def describe(key: KeyBackend) -> str:
    """Safe one-line label: the address for plaintext keys, the backend otherwise."""
    if isinstance(key, PlaintextKey):
        try:
            return key.address()
        except FormatError:
            return "invalid key"
    return f"({key.backend})"
