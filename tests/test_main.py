"""
Brief: Tests for the dohrace command line entry point.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

import dohrace.main as main_mod
from conftest import FakeResolver, answer, body
from dohrace.errors import TransportError


@pytest.fixture
def fake_build(monkeypatch):
    """Replace build_resolver with one returning a FakeResolver."""
    captured = {}

    def install(behaviours):
        def _build(cfg, *, providers=None, timeout_ms=None, strict_record_types=None):
            captured.update(
                cfg=cfg,
                providers=providers,
                timeout_ms=timeout_ms,
                strict_record_types=strict_record_types,
            )
            r = FakeResolver(behaviours)
            captured["resolver"] = r
            return r

        monkeypatch.setattr(main_mod, "build_resolver", _build)
        return captured

    return install


def test_main_a_lookup_prints_addresses(fake_build, capsys):
    captured = fake_build({"p": body(answer("A", "2.2.2.2"), answer("A", "3.3.3.3"))})
    rc = main_mod.main(["--provider", "https://x.example/resolve", "a", "example.com"])
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["2.2.2.2", "3.3.3.3"]
    assert captured["providers"] == ["https://x.example/resolve"]
    assert captured["strict_record_types"] is None


def test_main_srv_prints_cname_then_records(fake_build, capsys):
    captured = fake_build({"p": body(answer("SRV", "10 5 389 b."), answer("SRV", "1 1 389 a."))})
    rc = main_mod.main(["SRV", "example.com", "ldap", "tcp"])
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == [
        "_ldap._tcp.example.com.",
        "1 1 389 a.",
        "10 5 389 b.",
    ]
    assert captured["resolver"].calls[0][1] == "_ldap._tcp.example.com"


def test_main_mx_strict_flag(fake_build, capsys):
    captured = fake_build({"p": body(answer("MX", "10 mx.example."))})
    rc = main_mod.main(["--strict-types", "--timeout-ms", "700", "MX", "example.com"])
    assert captured["strict_record_types"] is True
    assert captured["timeout_ms"] == 700
    # FakeResolver itself is not strict, so the MX answer is ignored.
    assert rc == 1
    assert "on type TXT" in capsys.readouterr().err


def test_main_lookup_failure_exit_code(fake_build, capsys):
    fake_build({"p": TransportError("Network error from p: refused", "p")})
    rc = main_mod.main(["TXT", "example.com"])
    assert rc == 1
    assert "Network error from p: refused" in capsys.readouterr().err


def test_main_bad_config_path(capsys, tmp_path):
    rc = main_mod.main(["--config", str(tmp_path / "missing.yaml"), "A", "example.com"])
    assert rc == 1
    assert "missing.yaml" in capsys.readouterr().err


def test_main_config_file_feeds_build(fake_build, tmp_path):
    cfg_path = tmp_path / "c.yaml"
    cfg_path.write_text("providers: [https://a.example/dns-query]\nlogging: {level: error}\n")
    captured = fake_build({"p": body(answer("TXT", "hi"))})
    assert main_mod.main(["--config", str(cfg_path), "TXT", "example.com"]) == 0
    assert captured["cfg"]["providers"] == ["https://a.example/dns-query"]


def test_main_usage_errors():
    with pytest.raises(SystemExit) as ei:
        main_mod.main(["BOGUS", "example.com"])
    assert ei.value.code == 2
    with pytest.raises(SystemExit):
        main_mod.main(["A", "example.com", "ldap", "tcp"])
    with pytest.raises(SystemExit):
        main_mod.main(["SRV", "example.com", "ldap"])


def test_main_malformed_yaml_exits_with_message(capsys, tmp_path):
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text("providers: [https://a.example/dns-query\n")
    rc = main_mod.main(["--config", str(cfg_path), "A", "example.com"])
    assert rc == 1
    assert "Invalid YAML in" in capsys.readouterr().err


def test_main_marks_unparseable_addresses(fake_build, capsys):
    fake_build({"p": body(answer("A", "2.2.2.2"), answer("A", "not-an-ip"))})
    assert main_mod.main(["A", "example.com"]) == 0
    assert capsys.readouterr().out.splitlines() == ["2.2.2.2", main_mod.UNPARSEABLE_IP]
