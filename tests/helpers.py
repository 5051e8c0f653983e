from __future__ import annotations

from typing import List, Sequence

from domintel.engine.resolver import ProbeOutcome, RecordType, ResolverEndpoint


def make_endpoints(count: int) -> List[ResolverEndpoint]:
    return [ResolverEndpoint(f"Resolver {idx}", f"192.0.2.{idx + 1}", "Test") for idx in range(count)]


def success(endpoint: ResolverEndpoint, values: Sequence[str], rtype: RecordType = RecordType.A) -> ProbeOutcome:
    return ProbeOutcome.success(endpoint, rtype, values)


def no_data(endpoint: ResolverEndpoint, rtype: RecordType = RecordType.A) -> ProbeOutcome:
    return ProbeOutcome.no_data(endpoint, rtype, "No records found")


def error(endpoint: ResolverEndpoint, rtype: RecordType = RecordType.A, detail: str = "timeout") -> ProbeOutcome:
    return ProbeOutcome.failure(endpoint, rtype, detail)
