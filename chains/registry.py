"""
chains/registry.py - Chain, key and variable registry.

Holds the state of the config document in memory:
- chains: name -> ChainRecord (names and chain ids unique)
- keys: key name -> key spec (chains reference keys by name)
- variables: name -> value, used to resolve ${VAR} placeholders

The registry never touches the disk; config/store.py loads and saves it.
During a failover run nothing here is mutated until the run completes.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from core.constants import (
    DEFAULT_ENV_PREFIX,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    ENV_PRIVATE_KEY_SUFFIX,
    ENV_RPC_URL_SUFFIX,
    ENV_VERIFICATION_KEY_SUFFIX,
    ENV_VERIFIER_URL_SUFFIX,
    VARIABLE_NAME_PATTERN,
)
from core.exceptions import (
    ChainNotFound,
    DuplicateEntry,
    FormatError,
    KeyNotFound,
    UnresolvedVariable,
)
from core.logging import get_logger
from core.models import ChainRecord, ProbeResult
from core.variables import VariableResolver, placeholders
from chains.failover import FailoverResult, FailoverSelector
from keys.backends import KeyBackend, derive_address
from keys.codec import key_from_dict, key_to_dict

logger = get_logger("chainz.registry")

REGISTRY_BACKEND = "registry"


@dataclass
class Activation:
    """Everything needed to export a chain to the environment."""
    chain: ChainRecord
    rpc_url: str
    address: str
    env: Dict[str, str]
    report: List[ProbeResult] = field(default_factory=list)


def build_env(
    prefix: str,
    chain: ChainRecord,
    rpc_url: str,
    private_key: str,
    address: str,
    verification_api_key: str = "",
) -> Dict[str, str]:
    """Flat environment mapping for an activated chain."""
    env = {
        f"{prefix}_{ENV_RPC_URL_SUFFIX}": rpc_url,
        f"{prefix}_{ENV_PRIVATE_KEY_SUFFIX}": private_key,
        f"{prefix}_{ENV_VERIFICATION_KEY_SUFFIX}": verification_api_key,
    }
    if chain.verification_url:
        env[f"{prefix}_{ENV_VERIFIER_URL_SUFFIX}"] = chain.verification_url
    env.update({
        "ETH_RPC_URL": rpc_url,
        "CHAIN_ID": str(chain.chain_id),
        "CHAIN_NAME": chain.name,
        "WALLET_ADDRESS": address,
    })
    return env


class ChainRegistry:
    """In-memory registry of chains, keys and variables."""

    def __init__(
        self,
        chains: Optional[List[ChainRecord]] = None,
        keys: Optional[Dict[str, KeyBackend]] = None,
        variables: Optional[Dict[str, str]] = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ):
        self._chains: Dict[str, ChainRecord] = {}
        self._keys: Dict[str, KeyBackend] = dict(keys or {})
        self.variables: Dict[str, str] = dict(variables or {})
        self.env_prefix = env_prefix
        for chain in chains or []:
            self.add_chain(chain)

    # -------------------------------------------------------------------------
    # Chains
    # -------------------------------------------------------------------------

    def _check_unique_id(self, record: ChainRecord) -> None:
        for other in self._chains.values():
            if other.name != record.name and other.chain_id == record.chain_id:
                raise DuplicateEntry("chain id", record.chain_id)

    def add_chain(self, record: ChainRecord) -> ChainRecord:
        if record.name in self._chains:
            raise DuplicateEntry("chain name", record.name)
        self._check_unique_id(record)
        self._chains[record.name] = record
        return record

    def update_chain(self, record: ChainRecord) -> ChainRecord:
        if record.name not in self._chains:
            raise ChainNotFound(record.name)
        self._check_unique_id(record)
        self._chains[record.name] = record
        return record

    def remove_chain(self, name: str) -> ChainRecord:
        if name not in self._chains:
            raise ChainNotFound(name)
        return self._chains.pop(name)

    def get_chain(self, name_or_id: str | int) -> ChainRecord:
        """Look up by name first, then by chain id."""
        if isinstance(name_or_id, str) and name_or_id in self._chains:
            return self._chains[name_or_id]
        try:
            chain_id = int(name_or_id)
        except (TypeError, ValueError):
            raise ChainNotFound(name_or_id) from None
        for chain in self._chains.values():
            if chain.chain_id == chain_id:
                return chain
        raise ChainNotFound(name_or_id)

    def list_chains(self) -> List[ChainRecord]:
        return list(self._chains.values())

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def add_key(self, name: str, key: KeyBackend, replace: bool = False) -> None:
        if not name:
            raise FormatError("Key name must be non-empty")
        if name in self._keys and not replace:
            raise DuplicateEntry("key name", name)
        self._keys[name] = key

    def remove_key(self, name: str) -> KeyBackend:
        if name not in self._keys:
            raise KeyNotFound(REGISTRY_BACKEND, f"No key named '{name}'", {"key_name": name})
        return self._keys.pop(name)

    def get_key(self, name: str) -> KeyBackend:
        if name not in self._keys:
            raise KeyNotFound(REGISTRY_BACKEND, f"No key named '{name}'", {"key_name": name})
        return self._keys[name]

    def list_keys(self) -> Dict[str, KeyBackend]:
        return dict(self._keys)

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def set_variable(self, name: str, value: str) -> None:
        if not VARIABLE_NAME_PATTERN.match(name):
            raise FormatError(f"Invalid variable name: {name!r}")
        self.variables[name] = value

    def get_variable(self, name: str) -> Optional[str]:
        return self.variables.get(name)

    def remove_variable(self, name: str) -> bool:
        return self.variables.pop(name, None) is not None

    def resolver(self, environ: Optional[Mapping[str, str]] = None) -> VariableResolver:
        return VariableResolver(self.variables, environ)

    # -------------------------------------------------------------------------
    # Consistency
    # -------------------------------------------------------------------------

    def check(self, environ: Optional[Mapping[str, str]] = None) -> List[str]:
        """
        Human-readable list of inconsistencies (empty when healthy).

        Reports dangling key references, chains without candidates and
        placeholders that currently have no value.
        """
        env = dict(os.environ) if environ is None else environ
        resolver = self.resolver(env)
        issues: List[str] = []
        for chain in self._chains.values():
            if chain.key_name and chain.key_name not in self._keys:
                issues.append(f"{chain.name}: key '{chain.key_name}' does not exist")
            if not chain.rpc_urls:
                issues.append(f"{chain.name}: no RPC candidates")
            templates = list(chain.rpc_urls)
            if chain.verification_api_key:
                templates.append(chain.verification_api_key)
            missing: List[str] = []
            for template in templates:
                try:
                    names = placeholders(template)
                except FormatError as e:
                    issues.append(f"{chain.name}: {e.message}")
                    continue
                for name in names:
                    try:
                        resolver.lookup(name, env)
                    except UnresolvedVariable:
                        if name not in missing:
                            missing.append(name)
            for name in missing:
                issues.append(f"{chain.name}: variable '{name}' has no value")
        return issues

    # -------------------------------------------------------------------------
    # Failover & activation
    # -------------------------------------------------------------------------

    async def failover(
        self,
        name_or_id: str | int,
        timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        selector: Optional[FailoverSelector] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> FailoverResult:
        """
        Re-run RPC selection for a chain and record the winning template.

        Raises:
            NoHealthyEndpoint: the chain keeps its previous selection
        """
        chain = self.get_chain(name_or_id)
        selector = selector or FailoverSelector()
        result = await selector.select(
            chain.rpc_urls,
            self.variables,
            timeout=timeout,
            expected_chain_id=chain.chain_id,
            environ=environ,
        )
        chain.selected_rpc = result.selected
        return result

    async def activate(
        self,
        name_or_id: str | int,
        timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        selector: Optional[FailoverSelector] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Activation:
        """
        Failover, then fetch the chain's key and resolve its verification key.

        Raises:
            NoHealthyEndpoint, KeyNotFound, BackendUnavailable,
            UnresolvedVariable, FormatError
        """
        chain = self.get_chain(name_or_id)
        if not chain.key_name:
            raise KeyNotFound(
                REGISTRY_BACKEND,
                f"Chain '{chain.name}' has no key configured",
                {"chain": chain.name},
            )
        key = self.get_key(chain.key_name)

        result = await self.failover(chain.name, timeout, selector, environ)

        secret = key.secret()
        address = derive_address(secret, key.backend)

        verification_api_key = ""
        if chain.verification_api_key:
            verification_api_key = self.resolver(environ).resolve(chain.verification_api_key)

        logger.info(
            f"Activated chain {chain.name}",
            extra={
                "context": {
                    "chain": chain.name,
                    "chain_id": chain.chain_id,
                    "rpc": result.selected,
                    "key_name": chain.key_name,
                    "backend": key.backend,
                }
            },
        )
        return Activation(
            chain=chain,
            rpc_url=result.selected_url,
            address=address,
            env=build_env(
                self.env_prefix,
                chain,
                result.selected_url,
                secret,
                address,
                verification_api_key,
            ),
            report=result.report,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "env_prefix": self.env_prefix,
            "chains": [chain.to_dict() for chain in self._chains.values()],
            "keys": {name: key_to_dict(key) for name, key in self._keys.items()},
            "variables": dict(self.variables),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainRegistry":
        if not isinstance(data, dict):
            raise FormatError("Config document must be an object")
        keys = data.get("keys") or {}
        variables = data.get("variables") or {}
        if not isinstance(keys, dict) or not isinstance(variables, dict):
            raise FormatError("'keys' and 'variables' must be objects")
        return cls(
            chains=[ChainRecord.from_dict(c) for c in data.get("chains") or []],
            keys={name: key_from_dict(entry) for name, entry in keys.items()},
            variables={str(k): str(v) for k, v in variables.items()},
            env_prefix=data.get("env_prefix") or DEFAULT_ENV_PREFIX,
        )
