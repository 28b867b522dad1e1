"""
tests/unit/test_registry.py - Chain/key/variable registry tests.
"""

import pytest

from chains.failover import FailoverSelector
from chains.registry import ChainRegistry, build_env
from core.constants import ProbeFailure
from core.exceptions import (
    ChainNotFound,
    DuplicateEntry,
    FormatError,
    KeyNotFound,
    NoHealthyEndpoint,
    UnresolvedVariable,
)
from core.models import ChainRecord
from keys.backends import KeychainKey, PlaintextKey


def make_registry(private_key, **chain_kwargs) -> ChainRegistry:
    chain = ChainRecord(
        name=chain_kwargs.pop("name", "base"),
        chain_id=chain_kwargs.pop("chain_id", 8453),
        rpc_urls=chain_kwargs.pop("rpc_urls", ["https://a", "https://b"]),
        key_name=chain_kwargs.pop("key_name", "default"),
        **chain_kwargs,
    )
    return ChainRegistry(chains=[chain], keys={"default": PlaintextKey(private_key)})


class TestChains:
    def test_duplicate_name_rejected(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(DuplicateEntry):
            registry.add_chain(ChainRecord(name="base", chain_id=1))

    def test_duplicate_chain_id_rejected(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(DuplicateEntry):
            registry.add_chain(ChainRecord(name="base-copy", chain_id=8453))

    def test_get_by_name_or_id(self, private_key):
        registry = make_registry(private_key)
        assert registry.get_chain("base").chain_id == 8453
        assert registry.get_chain("8453").name == "base"
        assert registry.get_chain(8453).name == "base"

    def test_get_unknown(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(ChainNotFound):
            registry.get_chain("optimism")
        with pytest.raises(ChainNotFound):
            registry.get_chain("10")

    def test_update_and_remove(self, private_key):
        registry = make_registry(private_key)
        registry.update_chain(ChainRecord(name="base", chain_id=8453, rpc_urls=["https://c"]))
        assert registry.get_chain("base").rpc_urls == ["https://c"]
        registry.remove_chain("base")
        assert registry.list_chains() == []
        with pytest.raises(ChainNotFound):
            registry.remove_chain("base")

    def test_update_cannot_steal_chain_id(self, private_key):
        registry = make_registry(private_key)
        registry.add_chain(ChainRecord(name="op", chain_id=10))
        with pytest.raises(DuplicateEntry):
            registry.update_chain(ChainRecord(name="op", chain_id=8453))


class TestKeysAndVariables:
    def test_duplicate_key_needs_replace(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(DuplicateEntry):
            registry.add_key("default", KeychainKey("deployer"))
        registry.add_key("default", KeychainKey("deployer"), replace=True)
        assert isinstance(registry.get_key("default"), KeychainKey)

    def test_missing_key(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(KeyNotFound):
            registry.get_key("nope")
        with pytest.raises(KeyNotFound):
            registry.remove_key("nope")

    def test_variables(self, private_key):
        registry = make_registry(private_key)
        registry.set_variable("API_KEY", "abc")
        assert registry.get_variable("API_KEY") == "abc"
        assert registry.remove_variable("API_KEY") is True
        assert registry.remove_variable("API_KEY") is False
        assert registry.get_variable("API_KEY") is None

    def test_invalid_variable_name(self, private_key):
        registry = make_registry(private_key)
        with pytest.raises(FormatError):
            registry.set_variable("1BAD", "x")
        with pytest.raises(FormatError):
            registry.set_variable("", "x")


class TestCheck:
    def test_healthy_registry(self, private_key):
        assert make_registry(private_key).check(environ={}) == []

    def test_reports_dangling_key_and_missing_variable(self, private_key):
        registry = make_registry(
            private_key,
            rpc_urls=["https://a/${KEY}"],
            verification_api_key="${SCAN_KEY}",
        )
        registry.remove_key("default")
        issues = registry.check(environ={"SCAN_KEY": "s"})
        assert any("key 'default' does not exist" in issue for issue in issues)
        assert any("variable 'KEY' has no value" in issue for issue in issues)
        assert not any("SCAN_KEY" in issue for issue in issues)

    def test_reports_every_missing_variable_once(self, private_key):
        registry = make_registry(
            private_key,
            rpc_urls=["https://${HOST}/${KEY}", "https://b/${KEY}"],
        )
        issues = registry.check(environ={})
        assert issues == [
            "base: variable 'HOST' has no value",
            "base: variable 'KEY' has no value",
        ]

    def test_reports_malformed_template(self, private_key):
        registry = make_registry(private_key, rpc_urls=["https://a/${}"])
        assert len(registry.check(environ={})) == 1


class TestFailover:
    @pytest.mark.asyncio
    async def test_selection_recorded_as_template(self, private_key, fake_prober):
        registry = make_registry(private_key, rpc_urls=["https://a/${K}", "https://b"])
        registry.set_variable("K", "k1")
        selector = FailoverSelector(fake_prober({"https://a/k1": 10, "https://b": 40}))

        result = await registry.failover("base", selector=selector, environ={})

        assert result.selected == "https://a/${K}"
        assert registry.get_chain("base").selected_rpc == "https://a/${K}"

    @pytest.mark.asyncio
    async def test_no_healthy_endpoint_keeps_previous_selection(self, private_key, fake_prober):
        registry = make_registry(private_key, selected_rpc="https://b")
        selector = FailoverSelector(fake_prober({}))

        with pytest.raises(NoHealthyEndpoint):
            await registry.failover("base", selector=selector, environ={})
        assert registry.get_chain("base").selected_rpc == "https://b"

    @pytest.mark.asyncio
    async def test_chain_id_is_expected(self, private_key):
        seen = []

        class RecordingProber:
            async def probe(self, url, timeout, expected_chain_id=None, template=None):
                from core.models import ProbeResult
                seen.append(expected_chain_id)
                return ProbeResult.success(template or url, url, 1)

        registry = make_registry(private_key)
        await registry.failover(8453, selector=FailoverSelector(RecordingProber()), environ={})
        assert seen == [8453, 8453]


class TestActivate:
    @pytest.mark.asyncio
    async def test_env_mapping(self, private_key, address, fake_prober):
        registry = make_registry(
            private_key,
            verification_api_key="${SCAN_KEY}",
            verification_url="https://api.basescan.org/api",
        )
        registry.set_variable("SCAN_KEY", "scan-123")
        selector = FailoverSelector(fake_prober({"https://a": 30, "https://b": 20}))

        activation = await registry.activate("base", selector=selector, environ={})

        assert activation.rpc_url == "https://b"
        assert activation.address == address
        assert activation.env["FOUNDRY_RPC_URL"] == "https://b"
        assert activation.env["FOUNDRY_PRIVATE_KEY"] == private_key
        assert activation.env["FOUNDRY_VERIFICATION_API_KEY"] == "scan-123"
        assert activation.env["FOUNDRY_VERIFIER_URL"] == "https://api.basescan.org/api"
        assert activation.env["CHAIN_ID"] == "8453"
        assert activation.env["CHAIN_NAME"] == "base"
        assert activation.env["WALLET_ADDRESS"] == address
        assert activation.env["ETH_RPC_URL"] == "https://b"

    @pytest.mark.asyncio
    async def test_custom_prefix(self, private_key, fake_prober):
        registry = make_registry(private_key)
        registry.env_prefix = "HARDHAT"
        selector = FailoverSelector(fake_prober({"https://a": 5}))

        activation = await registry.activate("base", selector=selector, environ={})

        assert "HARDHAT_RPC_URL" in activation.env
        assert "FOUNDRY_RPC_URL" not in activation.env
        assert activation.env["HARDHAT_VERIFICATION_API_KEY"] == ""

    @pytest.mark.asyncio
    async def test_environment_overrides_store_for_rpc(self, private_key, fake_prober):
        registry = make_registry(private_key, rpc_urls=["https://rpc/${KEY}"])
        registry.set_variable("KEY", "stored")
        selector = FailoverSelector(fake_prober({"https://rpc/env": 5}))

        activation = await registry.activate("base", selector=selector, environ={"KEY": "env"})

        assert activation.rpc_url == "https://rpc/env"

    @pytest.mark.asyncio
    async def test_unresolved_verification_key(self, private_key, fake_prober):
        registry = make_registry(private_key, verification_api_key="${SCAN_KEY}")
        selector = FailoverSelector(fake_prober({"https://a": 5}))

        with pytest.raises(UnresolvedVariable) as exc_info:
            await registry.activate("base", selector=selector, environ={})
        assert exc_info.value.name == "SCAN_KEY"

    @pytest.mark.asyncio
    async def test_dangling_key_fails_before_probing(self, private_key, fake_prober):
        registry = make_registry(private_key, key_name="ghost")
        prober = fake_prober({"https://a": 5})

        with pytest.raises(KeyNotFound):
            await registry.activate("base", selector=FailoverSelector(prober), environ={})
        assert prober.calls == []

    @pytest.mark.asyncio
    async def test_chain_without_key(self, private_key, fake_prober):
        registry = make_registry(private_key, key_name=None)
        with pytest.raises(KeyNotFound):
            await registry.activate("base", selector=FailoverSelector(fake_prober({})), environ={})


class TestBuildEnv:
    def test_verifier_url_only_when_set(self, private_key, address):
        chain = ChainRecord(name="base", chain_id=8453, rpc_urls=["https://a"])
        env = build_env("FOUNDRY", chain, "https://a", private_key, address)
        assert "FOUNDRY_VERIFIER_URL" not in env
        assert env["FOUNDRY_VERIFICATION_API_KEY"] == ""


class TestSerialization:
    def test_round_trip(self, private_key):
        registry = make_registry(private_key, selected_rpc="https://a")
        registry.set_variable("K", "v")
        registry.env_prefix = "CAST"

        restored = ChainRegistry.from_dict(registry.to_dict())

        assert restored.to_dict() == registry.to_dict()
        assert restored.get_chain("base").selected_rpc == "https://a"
        assert restored.env_prefix == "CAST"

    def test_empty_document(self):
        registry = ChainRegistry.from_dict({})
        assert registry.list_chains() == []
        assert registry.env_prefix == "FOUNDRY"

    def test_bad_sections(self):
        with pytest.raises(FormatError):
            ChainRegistry.from_dict({"keys": ["x"]})
        with pytest.raises(FormatError):
            ChainRegistry.from_dict([])
