"""
chains/ - RPC health and chain registry layer.

Modules:
- prober: single-endpoint RPC probe
- failover: concurrent probing and endpoint selection
- registry: chains, keys and variables; activation
"""

from chains.prober import RPCProber
from chains.failover import (
    FailoverResult,
    FailoverSelector,
    pick_winner,
)
from chains.registry import (
    Activation,
    ChainRegistry,
    build_env,
)

__all__ = [
    # Prober
    "RPCProber",
    # Failover
    "FailoverResult",
    "FailoverSelector",
    "pick_winner",
    # Registry
    "Activation",
    "ChainRegistry",
    "build_env",
]
