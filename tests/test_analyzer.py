from __future__ import annotations

from domintel.engine.analyzer import VerdictStatus, analyze, canonical_key, failed_verdict, percentage
from domintel.engine.resolver import ProbeOutcome, RecordType

from helpers import error, make_endpoints, no_data, success


def test_errors_are_excluded_from_the_denominator():
    endpoints = make_endpoints(11)
    outcomes = (
        [success(ep, ["93.184.216.34"]) for ep in endpoints[:7]]
        + [no_data(ep) for ep in endpoints[7:9]]
        + [error(ep) for ep in endpoints[9:]]
    )
    verdict = analyze(outcomes, RecordType.A)
    assert verdict.total_endpoints == 11
    assert verdict.responded_endpoints == 9
    assert verdict.error_count == 2
    assert verdict.agreement_percentage == 78
    assert verdict.is_consistent is False
    assert verdict.status is VerdictStatus.INCONSISTENT
    assert len(verdict.groups) == 1


def test_absence_consensus_is_consistent():
    endpoints = make_endpoints(5)
    verdict = analyze([no_data(ep, RecordType.TXT) for ep in endpoints], RecordType.TXT)
    assert verdict.is_consistent is True
    assert verdict.agreement_percentage == 100
    assert verdict.groups == ()
    assert verdict.responded_endpoints == 5
    assert verdict.status is VerdictStatus.ABSENT


def test_full_consensus_single_group_with_every_endpoint():
    endpoints = make_endpoints(11)
    verdict = analyze([success(ep, ["93.184.216.34"]) for ep in endpoints], "A")
    assert verdict.is_consistent is True
    assert verdict.agreement_percentage == 100
    assert len(verdict.groups) == 1
    assert verdict.groups[0].values == ("93.184.216.34",)
    assert verdict.groups[0].endpoints == tuple(ep.name for ep in endpoints)
    assert verdict.all_distinct_values == frozenset({"93.184.216.34"})
    assert verdict.status is VerdictStatus.CONSISTENT


def test_value_order_within_an_answer_does_not_split_groups():
    first, second = make_endpoints(2)
    verdict = analyze([success(first, ["b", "a"]), success(second, ["a", "b"])], RecordType.A)
    assert len(verdict.groups) == 1
    assert verdict.groups[0].values == ("a", "b")
    assert verdict.is_consistent is True


def test_zero_responses_is_explicit_and_not_a_division_error():
    endpoints = make_endpoints(11)
    verdict = analyze([error(ep) for ep in endpoints], RecordType.A)
    assert verdict.responded_endpoints == 0
    assert verdict.agreement_percentage == 0
    assert verdict.is_consistent is False
    assert verdict.groups == ()
    assert verdict.status is VerdictStatus.NO_RESPONSES


def test_mx_priority_is_not_part_of_the_comparison():
    first, second = make_endpoints(2)
    outcomes = [
        ProbeOutcome.success(first, RecordType.MX, ["mx.example.com"], extras=[(10, "mx.example.com")]),
        ProbeOutcome.success(second, RecordType.MX, ["mx.example.com"], extras=[(20, "mx.example.com")]),
    ]
    verdict = analyze(outcomes, RecordType.MX)
    assert len(verdict.groups) == 1
    assert verdict.is_consistent is True


def test_divergent_answers_keep_every_group_largest_first():
    endpoints = make_endpoints(5)
    outcomes = [
        success(endpoints[0], ["198.51.100.1"]),
        success(endpoints[1], ["203.0.113.9"]),
        success(endpoints[2], ["203.0.113.9"]),
        success(endpoints[3], ["198.51.100.1"]),
        success(endpoints[4], ["203.0.113.9"]),
    ]
    verdict = analyze(outcomes, RecordType.A)
    assert verdict.is_consistent is False
    assert verdict.agreement_percentage == 100
    assert [g.values for g in verdict.groups] == [("203.0.113.9",), ("198.51.100.1",)]
    assert verdict.groups[0].endpoints == ("Resolver 1", "Resolver 2", "Resolver 4")
    assert verdict.all_distinct_values == frozenset({"198.51.100.1", "203.0.113.9"})
    assert sum(g.size for g in verdict.groups) == verdict.success_count


def test_equal_sized_groups_stay_in_endpoint_order():
    a, b = make_endpoints(2)
    verdict = analyze([success(a, ["x"]), success(b, ["y"])], RecordType.A)
    assert [g.endpoints for g in verdict.groups] == [("Resolver 0",), ("Resolver 1",)]


def test_canonical_key_and_percentage_helpers():
    assert canonical_key(["b", "c", "a"]) == ("a", "b", "c")
    assert percentage(7, 9) == 78
    assert percentage(1, 2) == 50
    assert percentage(1, 8) == 13
    assert percentage(0, 0) == 0


def test_failed_verdict_is_zero_valued():
    verdict = failed_verdict(RecordType.TXT, 11, "InvalidInputError: boom")
    assert verdict.record_type == "TXT"
    assert verdict.total_endpoints == 11
    assert verdict.responded_endpoints == 0
    assert verdict.agreement_percentage == 0
    assert verdict.is_consistent is False
    assert verdict.status is VerdictStatus.FAILED
    assert "boom" in verdict.message


def test_verdict_to_dict_exposes_groups_and_servers():
    a, b = make_endpoints(2)
    data = analyze([success(a, ["1.1.1.1"]), error(b)], RecordType.A).to_dict()
    assert data["value_groups"] == [{"values": ["1.1.1.1"], "servers": ["Resolver 0"]}]
    assert [row["status"] for row in data["servers"]] == ["success", "error"]
    assert data["all_distinct_values"] == ["1.1.1.1"]
