"""
tests/unit/test_variables.py - ${VAR} resolution tests.
"""

import pytest

from core.exceptions import ErrorCode, FormatError, UnresolvedVariable
from core.variables import VariableResolver, placeholders


def resolve(template, variables=None, environ=None):
    return VariableResolver(variables, environ).resolve(template)


class TestResolve:
    def test_no_placeholders_is_identity(self):
        assert resolve("https://rpc.example.org", {}, environ={}) == "https://rpc.example.org"

    def test_stored_value_used_when_not_in_environment(self):
        result = resolve(
            "https://mainnet.infura.io/v3/${INFURA_API_KEY}",
            {"INFURA_API_KEY": "stored"},
            environ={},
        )
        assert result == "https://mainnet.infura.io/v3/stored"

    def test_environment_wins_over_store(self):
        result = resolve(
            "https://x/${KEY}",
            {"KEY": "stored"},
            environ={"KEY": "from-env"},
        )
        assert result == "https://x/from-env"

    def test_multiple_placeholders(self):
        result = resolve("${SCHEME}://${HOST}/v1/${HOST}", {"SCHEME": "https", "HOST": "a"}, environ={})
        assert result == "https://a/v1/a"

    def test_unknown_placeholder_names_exactly_that_variable(self):
        with pytest.raises(UnresolvedVariable) as exc_info:
            resolve("https://a/${KNOWN}/${MISSING}", {"KNOWN": "k"}, environ={})
        assert exc_info.value.name == "MISSING"
        assert exc_info.value.code == ErrorCode.UNRESOLVED_VARIABLE

    def test_resolution_is_not_recursive(self):
        result = resolve("${A}", {"A": "${B}", "B": "never"}, environ={})
        assert result == "${B}"

    def test_lone_dollar_is_literal(self):
        assert resolve("cost$5 and $HOME", {}, environ={}) == "cost$5 and $HOME"

    def test_empty_value_is_allowed(self):
        assert resolve("a${X}b", {"X": ""}, environ={}) == "ab"


class TestFormatErrors:
    def test_empty_placeholder_is_format_error(self):
        with pytest.raises(FormatError):
            resolve("https://a/${}", {}, environ={})

    def test_unterminated_placeholder(self):
        with pytest.raises(FormatError):
            resolve("https://a/${KEY", {"KEY": "x"}, environ={})

    def test_invalid_name(self):
        with pytest.raises(FormatError):
            resolve("${bad name}", {"bad name": "x"}, environ={})

    def test_nested_placeholder_is_format_error(self):
        with pytest.raises(FormatError):
            resolve("${A${B}}", {"A": "a", "B": "b"}, environ={})

    def test_format_error_reported_before_unresolved(self):
        with pytest.raises(FormatError):
            resolve("${MISSING}${}", {}, environ={})

    def test_empty_placeholder_is_not_unresolved_variable(self):
        with pytest.raises(FormatError) as exc_info:
            resolve("${}", {}, environ={})
        assert not isinstance(exc_info.value, UnresolvedVariable)


class TestVariableResolver:
    def test_reads_process_environment_when_not_injected(self, monkeypatch):
        monkeypatch.setenv("CHAINZ_TEST_VAR", "live")
        resolver = VariableResolver({"CHAINZ_TEST_VAR": "stored"})
        assert resolver.resolve("${CHAINZ_TEST_VAR}") == "live"

    def test_environment_snapshot_per_call(self, monkeypatch):
        resolver = VariableResolver({"CHAINZ_TEST_VAR": "stored"})
        monkeypatch.delenv("CHAINZ_TEST_VAR", raising=False)
        assert resolver.resolve("${CHAINZ_TEST_VAR}") == "stored"
        monkeypatch.setenv("CHAINZ_TEST_VAR", "override")
        assert resolver.resolve("${CHAINZ_TEST_VAR}") == "override"

    def test_store_is_copied(self):
        store = {"A": "1"}
        resolver = VariableResolver(store, environ={})
        store["A"] = "2"
        assert resolver.resolve("${A}") == "1"


class TestPlaceholders:
    def test_lists_names_in_order_without_duplicates(self):
        assert placeholders("${B}/${A}/${B}") == ["B", "A"]

    def test_no_placeholders(self):
        assert placeholders("https://rpc") == []
