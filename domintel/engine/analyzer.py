from __future__ import annotations

"""Consensus analysis over the outcomes of one fan-out.

Pure functions only: a verdict is derived from its outcomes every time and
carries no state of its own.
"""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple, Union

from .resolver import ProbeOutcome, ProbeState, RecordType


class VerdictStatus(enum.Enum):
    CONSISTENT = "consistent"
    ABSENT = "absent"
    INCONSISTENT = "inconsistent"
    NO_RESPONSES = "no_responses"
    FAILED = "failed"


@dataclass(frozen=True)
class ValueGroup:
    """One distinct answer and the resolvers that returned it."""

    values: Tuple[str, ...]
    endpoints: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.endpoints)

    def to_dict(self) -> dict:
        return {"values": list(self.values), "servers": list(self.endpoints)}


@dataclass(frozen=True)
class PropagationVerdict:
    record_type: str
    total_endpoints: int
    responded_endpoints: int
    error_count: int
    no_data_count: int
    success_count: int
    is_consistent: bool
    agreement_percentage: int
    groups: Tuple[ValueGroup, ...]
    all_distinct_values: FrozenSet[str]
    status: VerdictStatus
    message: str
    outcomes: Tuple[ProbeOutcome, ...] = ()

    def to_dict(self, include_outcomes: bool = True) -> dict:
        data = {
            "record_type": self.record_type,
            "is_consistent": self.is_consistent,
            "agreement_percentage": self.agreement_percentage,
            "total_endpoints": self.total_endpoints,
            "responded_endpoints": self.responded_endpoints,
            "error_count": self.error_count,
            "no_data_count": self.no_data_count,
            "success_count": self.success_count,
            "status": self.status.value,
            "message": self.message,
            "value_groups": [g.to_dict() for g in self.groups],
            "all_distinct_values": sorted(self.all_distinct_values),
        }
        if include_outcomes:
            data["servers"] = [o.to_dict() for o in self.outcomes]
        return data


def canonical_key(values: Iterable[str]) -> Tuple[str, ...]:
    """Order-independent key: two answers match iff their sorted values match."""
    return tuple(sorted(values))


def percentage(part: int, whole: int) -> int:
    """Integer percentage rounded half up; 0 when `whole` is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def group_outcomes(outcomes: Iterable[ProbeOutcome]) -> List[ValueGroup]:
    buckets: Dict[Tuple[str, ...], List[str]] = {}
    for outcome in outcomes:
        if outcome.state is not ProbeState.SUCCESS:
            continue
        buckets.setdefault(canonical_key(outcome.values), []).append(outcome.endpoint.name)

    # dict keeps first-seen order, sort is stable: ties stay in endpoint order
    groups = [ValueGroup(values=key, endpoints=tuple(names)) for key, names in buckets.items()]
    groups.sort(key=lambda g: g.size, reverse=True)
    return groups


def _type_label(record_type: Union[RecordType, str]) -> str:
    return record_type.value if isinstance(record_type, RecordType) else str(record_type)


def analyze(outcomes: Sequence[ProbeOutcome], record_type: Union[RecordType, str]) -> PropagationVerdict:
    label = _type_label(record_type)
    outcomes = tuple(outcomes)
    total = len(outcomes)
    success = [o for o in outcomes if o.state is ProbeState.SUCCESS]
    no_data = [o for o in outcomes if o.state is ProbeState.NO_DATA]
    errors = total - len(success) - len(no_data)
    responded = len(success) + len(no_data)

    common = {
        "record_type": label,
        "total_endpoints": total,
        "responded_endpoints": responded,
        "error_count": errors,
        "no_data_count": len(no_data),
        "success_count": len(success),
        "outcomes": outcomes,
    }

    if responded == 0:
        return PropagationVerdict(
            is_consistent=False,
            agreement_percentage=0,
            groups=(),
            all_distinct_values=frozenset(),
            status=VerdictStatus.NO_RESPONSES,
            message=f"No DNS servers responded to the {label} query",
            **common,
        )

    if not success:
        return PropagationVerdict(
            is_consistent=True,
            agreement_percentage=100,
            groups=(),
            all_distinct_values=frozenset(),
            status=VerdictStatus.ABSENT,
            message=f"All responding servers agree there is no {label} record",
            **common,
        )

    groups = group_outcomes(success)
    pct = percentage(len(success), responded)
    consistent = len(groups) == 1 and not no_data
    distinct = frozenset(v for o in success for v in o.values)

    if consistent:
        status = VerdictStatus.CONSISTENT
        message = f"{label} records fully propagated ({responded}/{total} servers responding)"
    else:
        status = VerdictStatus.INCONSISTENT
        parts = [f"{len(groups)} distinct answer set(s)"]
        if no_data:
            parts.append(f"{len(no_data)} server(s) without the record")
        message = f"{label} propagation in progress ({pct}% of responding servers return data; {', '.join(parts)})"

    return PropagationVerdict(
        is_consistent=consistent,
        agreement_percentage=pct,
        groups=tuple(groups),
        all_distinct_values=distinct,
        status=status,
        message=message,
        **common,
    )


def failed_verdict(record_type: Union[RecordType, str], total_endpoints: int, reason: str) -> PropagationVerdict:
    """Zero-valued verdict standing in for a record type that could not be checked."""
    label = _type_label(record_type)
    return PropagationVerdict(
        record_type=label,
        total_endpoints=total_endpoints,
        responded_endpoints=0,
        error_count=0,
        no_data_count=0,
        success_count=0,
        is_consistent=False,
        agreement_percentage=0,
        groups=(),
        all_distinct_values=frozenset(),
        status=VerdictStatus.FAILED,
        message=f"{label} check failed: {reason}",
    )
