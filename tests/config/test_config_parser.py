"""
Brief: Tests for dohrace.config.config_parser.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

import pytest

import dohrace.config.config_parser as cp
from dohrace.default import DEFAULT_PROVIDERS
from dohrace.errors import ConfigurationError


def test_parse_config_variables_precedence() -> None:
    """Brief: CLI overrides environment overrides config-file variables."""

    cfg = {"vars": {"TIMEOUT": 100, "KEEP": "x"}}
    merged = cp.parse_config_variables(
        cfg, cli_vars=["TIMEOUT=300"], environ={"TIMEOUT": "200", "lower": "ignored"}
    )
    assert merged == {"TIMEOUT": 300, "KEEP": "x"}
    assert cfg["vars"] is merged


def test_parse_config_variables_rejects_bad_input() -> None:
    with pytest.raises(ValueError, match="KEY=YAML"):
        cp.parse_config_variables({}, cli_vars=["NOEQUALS"], environ={})
    with pytest.raises(ValueError, match="Invalid variable name"):
        cp.parse_config_variables({}, cli_vars=["lower=1"], environ={})
    with pytest.raises(ValueError, match="must be a mapping"):
        cp.parse_config_variables({"vars": [1]}, environ={})


def test_parse_config_file_expands_and_validates(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        """
vars:
  TIMEOUT: 1500
  HOST: dns.google
providers:
  - https://cloudflare-dns.com/dns-query
  - url: https://${HOST}/resolve
resolver:
  timeout_ms: $TIMEOUT
  strict_record_types: true
logging:
  level: debug
"""
    )
    cfg = cp.parse_config_file(str(path), environ={})
    assert "vars" not in cfg
    assert cfg["providers"][1] == {"url": "https://dns.google/resolve"}
    assert cfg["resolver"]["timeout_ms"] == 1500


def test_parse_config_file_cli_var_override(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("vars: {TIMEOUT: 1500}\nresolver: {timeout_ms: $TIMEOUT}\n")
    cfg = cp.parse_config_file(str(path), cli_vars=["TIMEOUT=900"], environ={})
    assert cfg["resolver"]["timeout_ms"] == 900


def test_parse_config_file_invalid(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("providers: [ftp://nope]\n")
    with pytest.raises(ValueError, match="Invalid configuration"):
        cp.parse_config_file(str(path), environ={})

    root_list = tmp_path / "list.yaml"
    root_list.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="root must be a mapping"):
        cp.parse_config_file(str(root_list), environ={})

    broken = tmp_path / "broken.yaml"
    broken.write_text("providers: [https://a.example/dns-query\n")
    with pytest.raises(ValueError, match="Invalid YAML in"):
        cp.parse_config_file(str(broken), environ={})


def test_normalize_provider_config_forms() -> None:
    providers, timeout_ms = cp.normalize_provider_config(
        {"providers": [" https://a.example/dns-query ", {"url": "https://b.example/resolve"}]}
    )
    assert providers == ["https://a.example/dns-query", "https://b.example/resolve"]
    assert timeout_ms == 5000


def test_normalize_provider_config_defaults_and_errors() -> None:
    providers, timeout_ms = cp.normalize_provider_config({"resolver": {"timeout_ms": "bad"}})
    assert providers == list(DEFAULT_PROVIDERS)
    assert timeout_ms == 5000

    with pytest.raises(ValueError):
        cp.normalize_provider_config({"providers": "https://a.example"})
    with pytest.raises(ValueError):
        cp.normalize_provider_config({"providers": [{"name": "x"}]})
    with pytest.raises(ValueError):
        cp.normalize_provider_config({"providers": ["  "]})
    with pytest.raises(ValueError):
        cp.normalize_provider_config({"resolver": [1]})


def test_build_resolver_from_config_and_overrides() -> None:
    cfg = {
        "providers": ["https://a.example/dns-query"],
        "resolver": {"timeout_ms": 1200, "strict_record_types": True, "headers": {"X-A": "1"}},
    }
    with cp.build_resolver(cfg) as r:
        assert r.providers == ("https://a.example/dns-query",)
        assert r.timeout_ms == 1200
        assert r.strict_record_types is True
        assert r.headers == {"X-A": "1"}

    with cp.build_resolver(
        cfg, providers=["https://b.example/resolve"], timeout_ms=300, strict_record_types=False
    ) as r2:
        assert r2.providers == ("https://b.example/resolve",)
        assert r2.timeout_ms == 300
        assert r2.strict_record_types is False


def test_build_resolver_empty_providers() -> None:
    with pytest.raises(ConfigurationError, match="no provider"):
        cp.build_resolver({"providers": []})
    with pytest.raises(ConfigurationError):
        cp.build_resolver({"providers": 5})
