#!/usr/bin/env python3
"""
cli.py - CLI entrypoint for CHAINZ.

Usage:
    chainz add --name base --chain-id 8453 --rpc https://mainnet.base.org \\
        --rpc 'https://base-mainnet.infura.io/v3/${INFURA_API_KEY}'
    chainz use base --print
    chainz update base
    chainz key add deployer --type keychain
    chainz var set INFURA_API_KEY abc123

Network work (probing) always completes before the config document is
written, and the document is written once per command.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import find_dotenv, load_dotenv

from core.constants import DEFAULT_KEY_NAME, DOT_ENV
from core.exceptions import ChainzError, DuplicateEntry, NoHealthyEndpoint
from core.logging import get_logger, set_global_context, setup_logging
from core.models import ChainRecord, ProbeResult
from chains.failover import FailoverSelector
from chains.registry import ChainRegistry
from config import load_defaults
from config.envfile import is_export_file, render_env, write_env
from config.store import ConfigStore
from keys.backends import (
    EncryptedKey,
    KeychainKey,
    OnePasswordKey,
    PlaintextKey,
    describe,
)

__version__ = "0.1.0"

logger = get_logger("chainz.cli")

KEY_TYPES = ["plaintext", "keychain", "onepassword", "encrypted"]


def make_selector() -> FailoverSelector:
    """Selector used by every command (tests swap in a fake prober)."""
    return FailoverSelector(tie_tolerance_ms=int(load_defaults()["latency_tie_tolerance_ms"]))


def default_timeout() -> float:
    return float(load_defaults()["probe_timeout_seconds"])


# =============================================================================
# RENDERING
# =============================================================================

def render_chain(chain: ChainRecord) -> str:
    rows = [
        ("ID", str(chain.chain_id)),
        ("Active RPC", chain.selected_rpc or "None"),
        ("Candidates", str(len(chain.rpc_urls))),
        ("Verification URL", chain.verification_url or "None"),
        ("Verification Key", chain.verification_api_key or "None"),
        ("Key Name", chain.key_name or "None"),
    ]
    lines = [f"Chain: {chain.name}"]
    for idx, (label, value) in enumerate(rows):
        branch = "└" if idx == len(rows) - 1 else "├"
        lines.append(f"{branch}─ {label}: {value}")
    return "\n".join(lines)


def render_report(report: list[ProbeResult]) -> str:
    lines = []
    for result in report:
        mark = "✓" if result.ok else "✗"
        lines.append(f"  {mark} {result.url}  {result.describe()}")
    return "\n".join(lines)


def fail(err: ChainzError) -> None:
    """Print a typed error (and the probe report, if any) and exit 1."""
    click.echo(f"Error: {err}", err=True)
    if isinstance(err, NoHealthyEndpoint) and err.report:
        click.echo(render_report(err.report), err=True)
    logger.debug("Command failed", extra={"context": err.to_dict()})
    sys.exit(1)


def _registry(ctx: click.Context) -> tuple[ConfigStore, ChainRegistry]:
    store: ConfigStore = ctx.obj
    try:
        return store, store.load()
    except ChainzError as e:
        fail(e)


# =============================================================================
# ROOT
# =============================================================================

@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Registry document (default: ~/.chainz.json or $CHAINZ_CONFIG)",
)
@click.option(
    "--log-level",
    "-l",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON log format",
)
@click.option(
    "--dotenv/--no-dotenv",
    default=True,
    help="Load a local .env into the environment before resolving variables",
)
@click.version_option(__version__)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[Path],
    log_level: str,
    json_logs: bool,
    dotenv: bool,
) -> None:
    """CHAINZ - manage EVM chain configurations."""
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service="chainz", version=__version__)
    if dotenv:
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path and is_export_file(dotenv_path):
            # Our own exports (CHAIN_ID, ETH_RPC_URL, ...) must not shadow stored variables
            logger.debug("Skipping generated env file", extra={"context": {"path": dotenv_path}})
        elif dotenv_path:
            load_dotenv(dotenv_path, override=False)
    ctx.obj = ConfigStore(config_path)


# =============================================================================
# CHAINS
# =============================================================================

@main.command("list")
@click.option("--check", is_flag=True, help="Probe every candidate RPC")
@click.option("--timeout", type=float, default=None, help="Per-probe timeout in seconds")
@click.pass_context
def list_chains(ctx: click.Context, check: bool, timeout: Optional[float]) -> None:
    """List configured chains."""
    _, registry = _registry(ctx)
    chains = registry.list_chains()
    if not chains:
        click.echo("No chains configured")
        return

    selector = make_selector()
    for chain in chains:
        click.echo(render_chain(chain))
        if check:
            try:
                result = asyncio.run(selector.select(
                    chain.rpc_urls,
                    registry.variables,
                    timeout=timeout or default_timeout(),
                    expected_chain_id=chain.chain_id,
                ))
                report = result.report
            except NoHealthyEndpoint as e:
                report = e.report
            click.echo(render_report(report))
        click.echo("")

    for issue in registry.check():
        click.echo(f"Warning: {issue}", err=True)


@main.command()
@click.option("--name", "-n", required=True, help="Chain name")
@click.option("--chain-id", "-i", required=True, type=int, help="Chain id")
@click.option("--rpc", "-r", "rpc_urls", multiple=True, required=True, help="Candidate RPC URL (repeatable)")
@click.option("--key-name", "-k", default=None, help="Key to use for this chain")
@click.option("--verification-key", default=None, help="Verification API key (may contain ${VAR})")
@click.option("--verification-url", default=None, help="Verifier URL")
@click.option("--timeout", type=float, default=None, help="Per-probe timeout in seconds")
@click.pass_context
def add(
    ctx: click.Context,
    name: str,
    chain_id: int,
    rpc_urls: tuple[str, ...],
    key_name: Optional[str],
    verification_key: Optional[str],
    verification_url: Optional[str],
    timeout: Optional[float],
) -> None:
    """Add a chain and select its RPC."""
    store, registry = _registry(ctx)
    try:
        if key_name is None and DEFAULT_KEY_NAME in registry.list_keys():
            key_name = DEFAULT_KEY_NAME
        if key_name is not None:
            registry.get_key(key_name)
        registry.add_chain(ChainRecord(
            name=name,
            chain_id=chain_id,
            rpc_urls=list(rpc_urls),
            verification_api_key=verification_key,
            verification_url=verification_url,
            key_name=key_name,
        ))
        result = asyncio.run(registry.failover(
            name, timeout or default_timeout(), make_selector(),
        ))
    except ChainzError as e:
        fail(e)

    store.save(registry)
    click.echo(f"Added chain {name}")
    click.echo(render_report(result.report))
    click.echo(render_chain(registry.get_chain(name)))


@main.command()
@click.argument("name")
@click.option("--rpc", "-r", "rpc_urls", multiple=True, help="Replace candidate RPC URLs")
@click.option("--key-name", "-k", default=None, help="Switch to another key")
@click.option("--verification-key", default=None, help="New verification API key")
@click.option("--verification-url", default=None, help="New verifier URL")
@click.option("--timeout", type=float, default=None, help="Per-probe timeout in seconds")
@click.pass_context
def update(
    ctx: click.Context,
    name: str,
    rpc_urls: tuple[str, ...],
    key_name: Optional[str],
    verification_key: Optional[str],
    verification_url: Optional[str],
    timeout: Optional[float],
) -> None:
    """Update a chain and re-run RPC failover."""
    store, registry = _registry(ctx)
    try:
        current = registry.get_chain(name)
        if key_name is not None:
            registry.get_key(key_name)
        candidates = list(rpc_urls) or current.rpc_urls
        updated = ChainRecord(
            name=current.name,
            chain_id=current.chain_id,
            rpc_urls=candidates,
            selected_rpc=current.selected_rpc if current.selected_rpc in candidates else None,
            verification_api_key=verification_key if verification_key is not None else current.verification_api_key,
            verification_url=verification_url if verification_url is not None else current.verification_url,
            key_name=key_name if key_name is not None else current.key_name,
        )
        registry.update_chain(updated)
        result = asyncio.run(registry.failover(
            updated.name, timeout or default_timeout(), make_selector(),
        ))
    except ChainzError as e:
        fail(e)

    store.save(registry)
    click.echo(f"Updated chain {updated.name}")
    click.echo(render_report(result.report))
    click.echo(render_chain(updated))


@main.command()
@click.argument("name")
@click.pass_context
def remove(ctx: click.Context, name: str) -> None:
    """Remove a chain."""
    store, registry = _registry(ctx)
    try:
        registry.remove_chain(name)
    except ChainzError as e:
        fail(e)
    store.save(registry)
    click.echo(f"Removed chain {name}")


@main.command()
@click.argument("name_or_id")
@click.option("--print", "print_env", is_flag=True, help="Also print the exports to stdout")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DOT_ENV,
    show_default=True,
    help="Where to write the exports",
)
@click.option("--timeout", type=float, default=None, help="Per-probe timeout in seconds")
@click.pass_context
def use(
    ctx: click.Context,
    name_or_id: str,
    print_env: bool,
    env_file: Path,
    timeout: Optional[float],
) -> None:
    """Activate a chain: pick its RPC and write the env file."""
    store, registry = _registry(ctx)
    try:
        activation = asyncio.run(registry.activate(
            name_or_id, timeout or default_timeout(), make_selector(),
        ))
    except ChainzError as e:
        fail(e)

    store.save(registry)
    write_env(activation.env, env_file)
    click.echo(f"Using chain {activation.chain.name} ({activation.chain.chain_id})", err=True)
    click.echo(f"Wallet: {activation.address}", err=True)
    click.echo(render_report(activation.report), err=True)
    if print_env:
        click.echo(render_env(activation.env), nl=False)


@main.command("set")
@click.option("--env-prefix", "-e", default=None, help="Prefix for exported variables")
@click.pass_context
def set_config(ctx: click.Context, env_prefix: Optional[str]) -> None:
    """Set a global config parameter."""
    store, registry = _registry(ctx)
    if env_prefix:
        registry.env_prefix = env_prefix
        click.echo(f"Environment prefix set to {env_prefix}")
    store.save(registry)


# =============================================================================
# KEYS
# =============================================================================

@main.group()
def key() -> None:
    """Manage private keys."""


@key.command("add")
@click.argument("name")
@click.option("--type", "key_type", type=click.Choice(KEY_TYPES), default="plaintext", show_default=True)
@click.option("--private-key", default=None, help="Key material (prompted when omitted)")
@click.option("--service", default=None, help="Keychain service")
@click.option("--username", default=None, help="Keychain username (default: key name)")
@click.option("--vault", default=None, help="1Password vault")
@click.option("--item", default=None, help="1Password item")
@click.option("--field", "field_name", default=None, help="1Password field")
@click.option("--replace", is_flag=True, help="Overwrite an existing key of that name")
@click.pass_context
def key_add(
    ctx: click.Context,
    name: str,
    key_type: str,
    private_key: Optional[str],
    service: Optional[str],
    username: Optional[str],
    vault: Optional[str],
    item: Optional[str],
    field_name: Optional[str],
    replace: bool,
) -> None:
    """Add a key."""
    store, registry = _registry(ctx)

    def material() -> str:
        return private_key or click.prompt("Private key", hide_input=True)

    try:
        # Nothing is written to an external store for a name that is taken
        if name in registry.list_keys() and not replace:
            raise DuplicateEntry("key name", name)
        if key_type == "plaintext":
            spec = PlaintextKey(value=material())
            spec.address()
        elif key_type == "keychain":
            spec = KeychainKey(
                username=username or name,
                service=service or load_defaults()["keychain_service"],
            )
            spec.store(material())
        elif key_type == "onepassword":
            spec = OnePasswordKey(
                vault=vault or click.prompt("1Password vault"),
                item=item or click.prompt("1Password item"),
                field_name=field_name,
            )
        else:
            secret = material()
            password = click.prompt("Encryption password", hide_input=True, confirmation_prompt=True)
            spec = EncryptedKey.encrypt(secret, password)
        registry.add_key(name, spec, replace=replace)
    except ChainzError as e:
        fail(e)

    store.save(registry)
    click.echo(f"Added key '{name}' ({spec.backend})")


@key.command("list")
@click.option("--resolve", is_flag=True, help="Query every backend for its address")
@click.pass_context
def key_list(ctx: click.Context, resolve: bool) -> None:
    """List keys."""
    _, registry = _registry(ctx)
    keys = registry.list_keys()
    if not keys:
        click.echo("No stored keys")
        return
    click.echo("Stored keys:")
    for name, spec in keys.items():
        if not resolve:
            click.echo(f"- {name}: {describe(spec)}")
            continue
        try:
            click.echo(f"- {name}: {spec.address()}")
        except ChainzError as e:
            click.echo(f"- {name}: {e}", err=True)


@key.command("rm")
@click.argument("name")
@click.pass_context
def key_rm(ctx: click.Context, name: str) -> None:
    """Remove a key."""
    store, registry = _registry(ctx)
    try:
        registry.remove_key(name)
    except ChainzError as e:
        fail(e)
    store.save(registry)
    click.echo(f"Removed key '{name}'")
    for issue in registry.check():
        click.echo(f"Warning: {issue}", err=True)


# =============================================================================
# VARIABLES
# =============================================================================

@main.group()
def var() -> None:
    """Manage ${VAR} values."""


@var.command("set")
@click.argument("name")
@click.argument("value")
@click.pass_context
def var_set(ctx: click.Context, name: str, value: str) -> None:
    """Set a variable."""
    store, registry = _registry(ctx)
    try:
        registry.set_variable(name, value)
    except ChainzError as e:
        fail(e)
    store.save(registry)
    click.echo(f"Set variable {name}")


@var.command("get")
@click.argument("name")
@click.pass_context
def var_get(ctx: click.Context, name: str) -> None:
    """Show a variable."""
    _, registry = _registry(ctx)
    value = registry.get_variable(name)
    if value is None:
        click.echo(f"Variable '{name}' not found", err=True)
        sys.exit(1)
    click.echo(f"{name} = {value}")


@var.command("list")
@click.pass_context
def var_list(ctx: click.Context) -> None:
    """List variables."""
    _, registry = _registry(ctx)
    if not registry.variables:
        click.echo("No variables set")
        return
    click.echo("Variables:")
    for name, value in sorted(registry.variables.items()):
        click.echo(f"  {name} = {value}")


@var.command("rm")
@click.argument("name")
@click.pass_context
def var_rm(ctx: click.Context, name: str) -> None:
    """Remove a variable."""
    store, registry = _registry(ctx)
    if not registry.remove_variable(name):
        click.echo(f"Variable '{name}' not found", err=True)
        sys.exit(1)
    store.save(registry)
    click.echo(f"Removed variable '{name}'")


if __name__ == "__main__":
    main()
