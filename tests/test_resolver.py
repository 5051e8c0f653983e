from __future__ import annotations

import asyncio
import time
from types import SimpleNamespace

import dns.exception
import dns.resolver
import pytest

import domintel.engine.resolver as resolver_mod
from domintel.engine.resolver import ProbeOutcome, ProbeState, RecordType, ResolverEndpoint, query_endpoint
from domintel.errors import InvalidInputError

ENDPOINT = ResolverEndpoint("Test", "192.0.2.53", "Lab")


class _FakeResolver:
    def __init__(self, answers=None, exc=None):
        self.answers = answers
        self.exc = exc
        self.calls = []

    def resolve(self, qname, rdtype, search=True):
        self.calls.append((qname, rdtype, search))
        if self.exc is not None:
            raise self.exc
        return self.answers


def _patch_resolver(monkeypatch, fake):
    monkeypatch.setattr(resolver_mod, "_build_resolver", lambda endpoint, deadline: fake)


def test_record_type_parse_accepts_members_and_strings():
    assert RecordType.parse("a") is RecordType.A
    assert RecordType.parse(" mx ") is RecordType.MX
    assert RecordType.parse(RecordType.TXT) is RecordType.TXT
    with pytest.raises(InvalidInputError):
        RecordType.parse("SPF")
    with pytest.raises(InvalidInputError):
        RecordType.parse(None)


def test_canonicalization_per_record_type():
    assert RecordType.A.canonicalize(SimpleNamespace(address="93.184.216.34")) == "93.184.216.34"
    assert RecordType.NS.canonicalize(SimpleNamespace(target="NS1.Example.COM.")) == "ns1.example.com"
    assert RecordType.MX.canonicalize(SimpleNamespace(exchange="Mail.Example.com.", preference=10)) == "mail.example.com"
    assert RecordType.TXT.canonicalize(SimpleNamespace(strings=[b"v=spf1 include:_spf.", b"example.com -all"])) == (
        "v=spf1 include:_spf.example.com -all"
    )


def test_endpoint_requires_ip_literal():
    with pytest.raises(InvalidInputError):
        ResolverEndpoint("Bad", "dns.google")


def test_outcome_states_are_structurally_distinct():
    with pytest.raises(ValueError):
        ProbeOutcome.success(ENDPOINT, RecordType.A, [])
    with pytest.raises(ValueError):
        ProbeOutcome(ENDPOINT, RecordType.A, ProbeState.NO_DATA, ("1.2.3.4",))
    with pytest.raises(ValueError):
        ProbeOutcome(ENDPOINT, RecordType.A, ProbeState.ERROR)
    assert ProbeOutcome.no_data(ENDPOINT, RecordType.A).responded is True
    assert ProbeOutcome.failure(ENDPOINT, RecordType.A, "timeout").responded is False


def test_success_keeps_address_order(monkeypatch):
    fake = _FakeResolver(answers=[SimpleNamespace(address="10.0.0.2"), SimpleNamespace(address="10.0.0.1")])
    _patch_resolver(monkeypatch, fake)
    outcome = asyncio.run(query_endpoint("example.com", "A", ENDPOINT, deadline=1.0))
    assert outcome.state is ProbeState.SUCCESS
    assert outcome.values == ("10.0.0.2", "10.0.0.1")
    assert fake.calls == [("example.com", "A", False)]


def test_mx_values_are_exchanges_and_priorities_go_to_extras(monkeypatch):
    answers = [
        SimpleNamespace(exchange="MX2.example.com.", preference=20),
        SimpleNamespace(exchange="mx1.example.com.", preference=10),
    ]
    _patch_resolver(monkeypatch, _FakeResolver(answers=answers))
    outcome = asyncio.run(query_endpoint("example.com", RecordType.MX, ENDPOINT, deadline=1.0))
    assert outcome.values == ("mx2.example.com", "mx1.example.com")
    assert outcome.extras == ((10, "mx1.example.com"), (20, "mx2.example.com"))


@pytest.mark.parametrize("exc", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
def test_missing_records_map_to_no_data(monkeypatch, exc):
    _patch_resolver(monkeypatch, _FakeResolver(exc=exc))
    outcome = asyncio.run(query_endpoint("example.com", "TXT", ENDPOINT, deadline=1.0))
    assert outcome.state is ProbeState.NO_DATA
    assert outcome.values == ()


def test_resolver_timeout_maps_to_error(monkeypatch):
    _patch_resolver(monkeypatch, _FakeResolver(exc=dns.exception.Timeout()))
    outcome = asyncio.run(query_endpoint("example.com", "A", ENDPOINT, deadline=1.0))
    assert outcome.state is ProbeState.ERROR
    assert outcome.error == "timeout"


@pytest.mark.parametrize("exc", [dns.resolver.NoNameservers(), ConnectionRefusedError("refused"), ValueError("bad packet")])
def test_network_failures_map_to_error(monkeypatch, exc):
    _patch_resolver(monkeypatch, _FakeResolver(exc=exc))
    outcome = asyncio.run(query_endpoint("example.com", "NS", ENDPOINT, deadline=1.0))
    assert outcome.state is ProbeState.ERROR
    assert outcome.error


def test_deadline_expiry_is_recorded_as_timeout(monkeypatch):
    def slow(domain, record_type, endpoint, deadline):
        time.sleep(0.3)
        return ProbeOutcome.no_data(endpoint, record_type)

    monkeypatch.setattr(resolver_mod, "_resolve_sync", slow)
    outcome = asyncio.run(query_endpoint("example.com", "A", ENDPOINT, deadline=0.05))
    assert outcome.state is ProbeState.ERROR
    assert outcome.error == "timeout"


def test_query_only_targets_the_given_endpoint():
    resolver = resolver_mod._build_resolver(ENDPOINT, 5.0)
    assert len(resolver.nameservers) == 1
    assert "192.0.2.53" in str(resolver.nameservers[0])
    assert resolver.lifetime == 5.0
