"""Tests for aggregation, classification and ranking."""

import random
from collections.abc import Sequence

import pytest

from flakehunt.aggregation import (
    aggregate,
    classify,
    filter_by_classification,
    signature_summary,
    top_flakes,
)
from flakehunt.models.outcome import Outcome, RunRecord, TestOutcome
from flakehunt.models.report import AggregatedTest
from flakehunt.testing.factories import RunRecordFactory, TestOutcomeFactory


def outcome(
    test_id: str,
    result: Outcome,
    duration: float = 1.0,
    message: str | None = None,
) -> TestOutcome:
    return TestOutcome(
        test_id=test_id, outcome=result, duration=duration, failure_message=message
    )


def record(run_index: int, *tests: TestOutcome) -> RunRecord:
    return RunRecord(run_index=run_index, tests=tests)


def by_id(tests: Sequence[AggregatedTest]) -> dict[str, AggregatedTest]:
    return {test.test_id: test for test in tests}


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize(
        ("passes", "fails", "expected"),
        [
            (3, 0, "stable"),
            (0, 0, "stable"),
            (2, 1, "flaky"),
            (1, 4, "flaky"),
            (0, 5, "deterministic_fail"),
        ],
    )
    def test_classification(self, passes: int, fails: int, expected: str) -> None:
        """Classifies from pass and fail counts."""
        assert classify(passes, fails) == expected


def test_flaky_test_with_timeout_failure() -> None:
    """Classifies a test failing once in three runs as flaky."""
    test_id = "src/api.test.ts::fetches data"
    runs = [
        record(1, outcome(test_id, "pass")),
        record(
            2,
            outcome(test_id, "fail", message="Request timed out waiting for response"),
        ),
        record(3, outcome(test_id, "pass")),
    ]

    [result] = aggregate(runs)

    assert result.classification == "flaky"
    assert result.pass_count == 2
    assert result.fail_count == 1
    assert result.total_runs == 3
    assert result.flake_rate == pytest.approx(1 / 3)
    assert result.wasted_time == pytest.approx(1.0)
    assert len(result.failure_evidence) == 1
    assert result.failure_evidence[0].run_index == 2
    assert result.failure_evidence[0].signature == "TIMEOUT"
    assert result.failure_evidence[0].excerpt == (
        "Request timed out waiting for response"
    )


def test_deterministic_failure() -> None:
    """Classifies a test failing in every run as a deterministic failure."""
    message = "AssertionError: expected true to be false"
    runs = [
        record(i, outcome("t::always fails", "fail", message=message))
        for i in range(1, 6)
    ]

    [result] = aggregate(runs)

    assert result.classification == "deterministic_fail"
    assert result.flake_rate == 1.0
    assert result.wasted_time == 0
    assert [ev.run_index for ev in result.failure_evidence] == [1, 2, 3, 4, 5]
    assert {ev.signature for ev in result.failure_evidence} == {"ASSERTION"}


def test_ties_are_broken_by_test_id() -> None:
    """Orders tests with equal metrics lexicographically."""
    runs = [
        record(
            1,
            outcome("z::t", "pass"),
            outcome("a::t", "pass"),
            outcome("m::t", "pass"),
        )
    ]

    results = aggregate(runs)

    assert [test.test_id for test in results] == ["a::t", "m::t", "z::t"]


def test_ranks_by_wasted_time_then_flake_rate_then_fail_count() -> None:
    """Applies the full ranking order."""
    runs = [
        record(
            1,
            outcome("slow-flaky", "fail", duration=10.0),
            outcome("fast-flaky", "fail", duration=1.0),
            outcome("broken-a", "fail"),
            outcome("broken-b", "fail"),
            outcome("stable", "pass"),
        ),
        record(
            2,
            outcome("slow-flaky", "pass", duration=10.0),
            outcome("fast-flaky", "pass", duration=1.0),
            outcome("broken-a", "fail"),
            outcome("stable", "pass"),
        ),
    ]

    results = aggregate(runs)

    assert [test.test_id for test in results] == [
        "slow-flaky",
        "fast-flaky",
        "broken-a",
        "broken-b",
        "stable",
    ]
    assert results[0].wasted_time == pytest.approx(0.5 * 10.0 * 2)
    assert results[1].wasted_time == pytest.approx(0.5 * 1.0 * 2)


def test_skips_do_not_affect_duration_or_rates() -> None:
    """Excludes skipped runs from totals, averages and the flake rate."""
    runs = [
        record(1, outcome("t", "pass", duration=2.0)),
        record(2, outcome("t", "skip", duration=100.0)),
        record(3, outcome("t", "fail", duration=4.0)),
    ]

    [result] = aggregate(runs)

    assert result.skip_count == 1
    assert result.total_runs == 2
    assert result.avg_duration == pytest.approx(3.0)
    assert result.flake_rate == pytest.approx(0.5)
    assert result.wasted_time == pytest.approx(0.5 * 3.0 * 3)


def test_all_skipped_is_stable() -> None:
    """Treats a test that never ran as stable with no metrics."""
    runs = [record(1, outcome("t", "skip")), record(2, outcome("t", "skip"))]

    [result] = aggregate(runs)

    assert result.classification == "stable"
    assert result.total_runs == 0
    assert result.flake_rate == 0
    assert result.avg_duration == 0
    assert result.wasted_time == 0


def test_error_runs_count_towards_executed_runs() -> None:
    """Uses every executed run, including failed ones, in wasted time."""
    runs = [
        record(1, outcome("t", "pass", duration=2.0)),
        record(2, outcome("t", "fail", duration=2.0)),
        RunRecord(run_index=3, error="Expected artifact not found"),
        RunRecord(run_index=4, error="Expected artifact not found"),
    ]

    [result] = aggregate(runs)

    assert result.total_runs == 2
    assert result.wasted_time == pytest.approx(0.5 * 2.0 * 4)


def test_all_runs_failed_yields_no_tests() -> None:
    """Produces an empty result when no run contributed data."""
    runs = [RunRecord(run_index=i, error="parse error") for i in (1, 2)]

    assert aggregate(runs) == []
    assert aggregate([]) == []


def test_evidence_is_sorted_by_run_index() -> None:
    """Sorts failure evidence by run index regardless of input order."""
    runs = [
        record(3, outcome("t", "fail", message="third")),
        record(1, outcome("t", "fail", message="first")),
        record(2, outcome("t", "pass")),
    ]

    [result] = aggregate(runs)

    assert [ev.run_index for ev in result.failure_evidence] == [1, 3]
    assert [ev.excerpt for ev in result.failure_evidence] == ["first", "third"]


def test_counts_match_appearances() -> None:
    """Counts each appearance of a test exactly once."""
    runs = [RunRecordFactory.build(run_index=i) for i in range(1, 6)]
    shared = TestOutcomeFactory.build(test_id="shared::test")
    runs = [
        RunRecord(run_index=r.run_index, tests=[*r.tests, shared]) for r in runs
    ]

    results = by_id(aggregate(runs))

    assert results["shared::test"].pass_count == 5
    for run in runs:
        for test in run.tests:
            aggregated = results[test.test_id]
            appearances = sum(
                1 for r in runs for t in r.tests if t.test_id == test.test_id
            )
            assert (
                aggregated.pass_count + aggregated.fail_count + aggregated.skip_count
                == appearances
            )


def test_ordering_is_independent_of_input_order() -> None:
    """Produces identical output for shuffled input."""
    rng = random.Random(7)
    outcomes: list[Outcome] = ["pass", "fail", "skip"]
    runs = [
        record(
            i,
            *(
                outcome(f"suite::test {n}", rng.choice(outcomes), duration=n % 3 + 0.5)
                for n in range(20)
            ),
        )
        for i in range(1, 8)
    ]
    expected = aggregate(runs)

    for _ in range(5):
        shuffled = runs[:]
        rng.shuffle(shuffled)
        assert aggregate(shuffled) == expected


def test_average_duration_is_independent_of_record_order() -> None:
    """Ties tests whose durations differ only in the order they were observed."""
    runs = [
        record(1, outcome("a::t", "fail", 0.1), outcome("b::t", "pass", 0.3)),
        record(2, outcome("a::t", "pass", 0.2), outcome("b::t", "pass", 0.2)),
        record(3, outcome("a::t", "pass", 0.3), outcome("b::t", "fail", 0.1)),
    ]

    forward = aggregate(runs)
    backward = aggregate(runs[::-1])

    assert [t.test_id for t in forward] == ["a::t", "b::t"]
    assert [t.test_id for t in backward] == ["a::t", "b::t"]
    assert forward[0].wasted_time == forward[1].wasted_time
    assert forward == backward


def test_wasted_time_is_zero_for_non_flaky_tests() -> None:
    """Never assigns wasted time to stable or deterministically failing tests."""
    runs = [
        record(i, outcome("ok", "pass", 5.0), outcome("broken", "fail", 5.0))
        for i in (1, 2, 3)
    ]

    results = aggregate(runs)

    assert all(test.wasted_time == 0 for test in results)


class TestViews:
    """Tests for derived views over aggregated results."""

    @pytest.fixture
    def results(self) -> list[AggregatedTest]:
        runs = [
            record(
                1,
                outcome("flaky-1", "fail", 3.0, "Timed out after 5000ms"),
                outcome("flaky-2", "fail", 1.0, "expect(x).toBe(1)"),
                outcome("broken", "fail", 1.0, "ECONNREFUSED"),
                outcome("ok", "pass"),
            ),
            record(
                2,
                outcome("flaky-1", "pass", 3.0),
                outcome("flaky-2", "pass", 1.0),
                outcome("broken", "fail", 1.0, "ECONNREFUSED"),
                outcome("ok", "pass"),
            ),
        ]
        return list(aggregate(runs))

    def test_filter_by_classification(self, results: list[AggregatedTest]) -> None:
        """Keeps ranked order when filtering."""
        flaky = filter_by_classification(results, "flaky")
        broken = filter_by_classification(results, "deterministic_fail")

        assert [t.test_id for t in flaky] == ["flaky-1", "flaky-2"]
        assert [t.test_id for t in broken] == ["broken"]

    def test_top_flakes_limits_results(self, results: list[AggregatedTest]) -> None:
        """Returns the first K flaky tests."""
        assert [t.test_id for t in top_flakes(results, 1)] == ["flaky-1"]

    def test_top_flakes_returns_all_when_fewer(
        self, results: list[AggregatedTest]
    ) -> None:
        """Returns every flaky test when there are fewer than K."""
        assert len(top_flakes(results, 10)) == 2

    def test_signature_summary(self, results: list[AggregatedTest]) -> None:
        """Counts evidence per signature, most frequent first."""
        summary = signature_summary(results)

        assert summary == {"NETWORK": 2, "ASSERTION": 1, "TIMEOUT": 1}
        assert list(summary) == ["NETWORK", "ASSERTION", "TIMEOUT"]
