from __future__ import annotations

"""Compatibility facade for the domintel runtime.

Public imports remain stable while implementation lives in `domintel.engine`.
"""

from .engine.aggregate import PropagationChecker, aggregate
from .engine.analyzer import PropagationVerdict, ValueGroup, VerdictStatus, analyze, failed_verdict
from .engine.fanout import FanOutEngine
from .engine.resolver import (
    PROPAGATION_RECORD_TYPES,
    ProbeOutcome,
    ProbeState,
    RecordType,
    ResolverEndpoint,
    query_endpoint,
)
from .engine.runtime import (
    DOMINTEL,
    DomainReport,
    _run_coro_sync,
    build_report,
    check_propagation,
    fmt_td,
    logger,
)

__all__ = [
    "DOMINTEL",
    "DomainReport",
    "FanOutEngine",
    "PROPAGATION_RECORD_TYPES",
    "ProbeOutcome",
    "ProbeState",
    "PropagationChecker",
    "PropagationVerdict",
    "RecordType",
    "ResolverEndpoint",
    "ValueGroup",
    "VerdictStatus",
    "aggregate",
    "analyze",
    "build_report",
    "check_propagation",
    "failed_verdict",
    "fmt_td",
    "logger",
    "query_endpoint",
    "_run_coro_sync",
]
