# PATH: core/constants.py
"""
Constants for CHAINZ.

Only truly constant values here. Tunables go to config/defaults.yaml
"""

import re
from enum import Enum
from typing import Final

# =============================================================================
# CONFIG DOCUMENT
# =============================================================================

CONFIG_FILE_NAME: Final = ".chainz.json"
CONFIG_PATH_ENV_VAR: Final = "CHAINZ_CONFIG"
DOT_ENV: Final = ".env"

DEFAULT_ENV_PREFIX: Final = "FOUNDRY"
DEFAULT_KEY_NAME: Final = "default"

# =============================================================================
# PLACEHOLDERS
# =============================================================================

# ${NAME} where NAME is a shell-style identifier
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
PLACEHOLDER_OPEN: Final = "${"
PLACEHOLDER_CLOSE: Final = "}"

# =============================================================================
# RPC
# =============================================================================

PROBE_METHOD: Final = "eth_chainId"
DEFAULT_PROBE_TIMEOUT_SECONDS: Final = 5.0


class ProbeFailure(str, Enum):
    """Why a single endpoint probe failed."""
    UNRESOLVED_VARIABLE = "UNRESOLVED_VARIABLE"
    INVALID_URL = "INVALID_URL"
    CONNECTION = "CONNECTION"
    TLS = "TLS"
    HTTP_STATUS = "HTTP_STATUS"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    RPC_ERROR = "RPC_ERROR"
    TIMEOUT = "TIMEOUT"
    CHAIN_ID_MISMATCH = "CHAIN_ID_MISMATCH"


# =============================================================================
# KEYS
# =============================================================================

class KeyType(str, Enum):
    """Serialized tag of each key backend."""
    PRIVATE_KEY = "PrivateKey"
    KEYCHAIN = "Keychain"
    ONE_PASSWORD = "OnePassword"
    ENCRYPTED_KEY = "EncryptedKey"


# Backend names used in error messages
BACKEND_PLAINTEXT: Final = "plaintext"
BACKEND_KEYCHAIN: Final = "keychain"
BACKEND_ONE_PASSWORD: Final = "1password"
BACKEND_ENCRYPTED: Final = "encrypted"

ONE_PASSWORD_CLI: Final = "op"
AES_GCM_NONCE_BYTES: Final = 12

# =============================================================================
# ENVIRONMENT EXPORT
# =============================================================================

ENV_RPC_URL_SUFFIX: Final = "RPC_URL"
ENV_PRIVATE_KEY_SUFFIX: Final = "PRIVATE_KEY"
ENV_VERIFICATION_KEY_SUFFIX: Final = "VERIFICATION_API_KEY"
ENV_VERIFIER_URL_SUFFIX: Final = "VERIFIER_URL"
