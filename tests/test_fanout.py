from __future__ import annotations

import asyncio

import pytest

from domintel.engine.fanout import FanOutEngine
from domintel.engine.resolver import ProbeOutcome, ProbeState, RecordType
from domintel.errors import InvalidInputError

from helpers import make_endpoints


def test_output_order_follows_endpoints_not_completion():
    endpoints = make_endpoints(4)
    delays = {endpoints[0].name: 0.08, endpoints[1].name: 0.04, endpoints[2].name: 0.0, endpoints[3].name: 0.02}
    finished = []

    async def fake_query(domain, record_type, endpoint, deadline, io_executor=None):
        await asyncio.sleep(delays[endpoint.name])
        finished.append(endpoint.name)
        return ProbeOutcome.success(endpoint, record_type, [endpoint.address])

    engine = FanOutEngine(endpoints, deadline=1.0, query=fake_query)
    outcomes = asyncio.run(engine.run("example.com", "A"))

    assert finished[0] == endpoints[2].name
    assert [o.endpoint for o in outcomes] == endpoints
    assert [o.values for o in outcomes] == [(ep.address,) for ep in endpoints]


def test_one_failing_or_slow_endpoint_does_not_affect_the_others():
    endpoints = make_endpoints(3)

    async def fake_query(domain, record_type, endpoint, deadline, io_executor=None):
        if endpoint is endpoints[0]:
            raise ConnectionRefusedError("refused")
        if endpoint is endpoints[1]:
            await asyncio.sleep(5)
        return ProbeOutcome.success(endpoint, record_type, ["203.0.113.5"])

    engine = FanOutEngine(endpoints, deadline=0.05, query=fake_query)
    outcomes = asyncio.run(engine.run("example.com", RecordType.A))

    assert len(outcomes) == 3
    assert outcomes[0].state is ProbeState.ERROR
    assert "ConnectionRefusedError" in outcomes[0].error
    assert outcomes[1].state is ProbeState.ERROR
    assert outcomes[1].error == "timeout"
    assert outcomes[2].state is ProbeState.SUCCESS


def test_unsupported_record_type_fails_before_any_query():
    calls = []

    async def fake_query(domain, record_type, endpoint, deadline, io_executor=None):
        calls.append(endpoint)
        return ProbeOutcome.no_data(endpoint, record_type)

    engine = FanOutEngine(make_endpoints(3), query=fake_query)
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.run("example.com", "SPF"))
    assert calls == []


def test_deadline_is_passed_to_every_query():
    seen = []

    async def fake_query(domain, record_type, endpoint, deadline, io_executor=None):
        seen.append((domain, record_type, deadline))
        return ProbeOutcome.no_data(endpoint, record_type)

    engine = FanOutEngine(make_endpoints(2), deadline=2.5, query=fake_query)
    asyncio.run(engine.run("example.com", "mx"))
    assert seen == [("example.com", RecordType.MX, 2.5)] * 2


def test_empty_endpoint_list_returns_no_outcomes():
    engine = FanOutEngine([], query=None)
    assert asyncio.run(engine.run("example.com", "A")) == []
