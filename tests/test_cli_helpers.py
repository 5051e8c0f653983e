from __future__ import annotations

import pytest

import domintel.cli as cli
from domintel.engine.resolver import RecordType
from domintel.engine.runtime import DomainReport
from domintel.errors import InvalidInputError
from domintel.probes.base import ProbeResult


def test_parse_csv_strips_empty_parts():
    assert cli._parse_csv(" a, ,b ,,c") == ["a", "b", "c"]
    assert cli._parse_csv(None) == []


def test_parse_record_types_defaults_and_validates():
    assert cli._parse_record_types(None) == [RecordType.A, RecordType.NS, RecordType.MX, RecordType.TXT]
    assert cli._parse_record_types("aaaa, mx") == [RecordType.AAAA, RecordType.MX]
    with pytest.raises(InvalidInputError):
        cli._parse_record_types("A,SPF")


def test_parse_probes():
    assert cli._parse_probes(None, propagation_only=False) == ["dns", "whois", "tls", "hosting", "technology"]
    assert cli._parse_probes("TLS,whois", propagation_only=False) == ["tls", "whois"]
    assert cli._parse_probes("tls", propagation_only=True) == []
    with pytest.raises(InvalidInputError, match="ports"):
        cli._parse_probes("tls,ports", propagation_only=False)


def test_main_without_domain_prints_help():
    assert cli.main([]) == 2


def test_main_rejects_invalid_domain():
    assert cli.main(["-d", "not a domain", "--no-validate"]) == 2


def test_main_rejects_unsupported_record_type_before_any_lookup(monkeypatch):
    def unexpected(*args, **kwargs):
        raise AssertionError("no lookups expected")

    monkeypatch.setattr(cli, "ssrf_check", unexpected)
    monkeypatch.setattr(cli, "build_report", unexpected)
    assert cli.main(["-d", "example.com", "--types", "SPF"]) == 2


def test_main_blocks_private_targets(monkeypatch):
    async def gate(domain):
        return {"safe": False, "reason": "Domain resolves to private IP address"}

    monkeypatch.setattr(cli, "ssrf_check", gate)
    assert cli.main(["-d", "intranet.example.com", "--silent"]) == 2


def test_main_json_output(monkeypatch, capsys):
    seen = {}

    async def fake_build_report(domain, settings=None, record_types=None, probes=None):
        seen.update(domain=domain, record_types=record_types, probes=probes, dns_timeout=settings.dns_timeout)
        return DomainReport(domain=domain, probes={"tls": ProbeResult.unavailable("tls", "timeout")})

    monkeypatch.setattr(cli, "build_report", fake_build_report)
    code = cli.main(
        ["-d", "https://www.Example.com/", "--no-validate", "--json", "--types", "a", "--probes", "tls", "--dns-timeout", "2"]
    )
    assert code == 0
    assert seen == {"domain": "example.com", "record_types": [RecordType.A], "probes": ["tls"], "dns_timeout": 2.0}
    out = capsys.readouterr().out
    assert '"domain": "example.com"' in out
    assert '"reason": "timeout"' in out
