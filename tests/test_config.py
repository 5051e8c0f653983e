from __future__ import annotations

import json
from pathlib import Path

import pytest

from domintel.config import DEFAULT_RESOLVERS, Settings, load_resolvers, load_settings, parse_resolvers
from domintel.errors import InvalidInputError


def test_default_resolver_set():
    assert len(DEFAULT_RESOLVERS) == 11
    assert DEFAULT_RESOLVERS[0].address == "8.8.8.8"
    assert len({ep.address for ep in DEFAULT_RESOLVERS}) == 11


def test_env_values_override_defaults(monkeypatch):
    monkeypatch.setenv("DOMINTEL_DNS_TIMEOUT", "2.5")
    monkeypatch.setenv("DOMINTEL_PROBE_TIMEOUT", "-1")
    monkeypatch.setenv("DOMINTEL_GEOIP_URL", "http://geo.test/{ip}")
    monkeypatch.delenv("DOMINTEL_RESOLVERS_FILE", raising=False)
    settings = load_settings()
    assert settings.dns_timeout == 2.5
    assert settings.probe_timeout == 10.0
    assert settings.geoip_url == "http://geo.test/{ip}"
    assert settings.resolvers == DEFAULT_RESOLVERS


def test_override_ignores_none():
    base = Settings()
    updated = base.override(dns_timeout=None, probe_timeout=3.0, resolvers=[DEFAULT_RESOLVERS[0]])
    assert updated.dns_timeout == base.dns_timeout
    assert updated.probe_timeout == 3.0
    assert updated.resolvers == (DEFAULT_RESOLVERS[0],)


def test_parse_resolvers_accepts_ip_and_location_aliases():
    endpoints = parse_resolvers([{"name": "Lab", "ip": "192.0.2.1", "location": "Rack 4"}, {"address": "2001:db8::1"}])
    assert endpoints[0].region == "Rack 4"
    assert endpoints[1].name == "2001:db8::1"
    assert endpoints[1].region == "Global"


def test_parse_resolvers_rejects_bad_entries():
    with pytest.raises(InvalidInputError):
        parse_resolvers([])
    with pytest.raises(InvalidInputError):
        parse_resolvers(["8.8.8.8"])
    with pytest.raises(InvalidInputError):
        parse_resolvers([{"name": "Named", "address": "dns.google"}])


def test_load_resolvers_from_file(tmp_path: Path):
    listing = tmp_path / "resolvers.json"
    listing.write_text(json.dumps({"resolvers": [{"name": "One", "address": "192.0.2.10"}]}), encoding="utf-8")
    endpoints = load_resolvers(str(listing))
    assert [(ep.name, ep.address) for ep in endpoints] == [("One", "192.0.2.10")]
    assert load_resolvers(None) == DEFAULT_RESOLVERS


def test_load_resolvers_reports_missing_or_broken_files(tmp_path: Path):
    with pytest.raises(InvalidInputError, match="not found"):
        load_resolvers(str(tmp_path / "missing.json"))
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidInputError, match="not valid JSON"):
        load_resolvers(str(broken))
