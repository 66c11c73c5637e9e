"""Aggregation, classification and ranking of test outcomes across runs."""

import logging
import math
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from flakehunt.models.outcome import Classification, FailureSignature, RunRecord
from flakehunt.models.report import AggregatedTest, FailureEvidence
from flakehunt.signatures import detect_signature, truncate_excerpt

log = logging.getLogger(__name__)

DEFAULT_TOP_FLAKES = 10


@dataclass(kw_only=True)
class _TestAccumulator:
    """Mutable per-test counters used while folding run records."""

    test_id: str
    pass_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    durations: list[float] = field(default_factory=list)
    evidence: list[FailureEvidence] = field(default_factory=list)


def aggregate(records: Sequence[RunRecord]) -> Sequence[AggregatedTest]:
    """Merge per-run outcomes into one ranked, classified entry per test.

    Every record counts towards the number of executed runs used by the
    wasted-time metric, including records that carry a run-level error.

    Args:
        records: Run records of one session, in any order

    Returns:
        Aggregated tests sorted by wasted time, flake rate and fail count
        (all descending), then test identity (ascending)

    """
    accumulators: dict[str, _TestAccumulator] = {}

    for record in records:
        if not record.has_data:
            log.debug("Skipping run %d: %s", record.run_index, record.error)
            continue

        for test in record.tests:
            acc = accumulators.get(test.test_id)
            if acc is None:
                acc = accumulators[test.test_id] = _TestAccumulator(
                    test_id=test.test_id
                )

            match test.outcome:
                case "pass":
                    acc.pass_count += 1
                    acc.durations.append(test.duration)
                case "fail":
                    acc.fail_count += 1
                    acc.durations.append(test.duration)
                    acc.evidence.append(
                        FailureEvidence(
                            run_index=record.run_index,
                            excerpt=truncate_excerpt(test.failure_message),
                            signature=detect_signature(test.failure_message),
                        )
                    )
                case "skip":
                    acc.skip_count += 1

    runs_executed = len(records)
    results = [
        _build_aggregated_test(acc, runs_executed) for acc in accumulators.values()
    ]
    return sorted(results, key=_ranking_key)


def classify(pass_count: int, fail_count: int) -> Classification:
    """Classify a test from its pass and fail counts."""
    total_runs = pass_count + fail_count
    if total_runs == 0:
        return "stable"
    if pass_count >= 1 and fail_count >= 1:
        return "flaky"
    if fail_count == total_runs:
        return "deterministic_fail"
    return "stable"


def _build_aggregated_test(acc: _TestAccumulator, runs_executed: int) -> AggregatedTest:
    total_runs = acc.pass_count + acc.fail_count
    # Exactly rounded: the mean must not depend on record order.
    avg_duration = (
        math.fsum(acc.durations) / len(acc.durations) if acc.durations else 0.0
    )
    classification = classify(acc.pass_count, acc.fail_count)
    flake_rate = acc.fail_count / total_runs if total_runs else 0.0

    wasted_time = 0.0
    if classification == "flaky":
        wasted_time = flake_rate * avg_duration * runs_executed

    return AggregatedTest(
        test_id=acc.test_id,
        pass_count=acc.pass_count,
        fail_count=acc.fail_count,
        skip_count=acc.skip_count,
        total_runs=total_runs,
        avg_duration=avg_duration,
        classification=classification,
        flake_rate=flake_rate,
        wasted_time=wasted_time,
        failure_evidence=sorted(acc.evidence, key=lambda ev: ev.run_index),
    )


def _ranking_key(test: AggregatedTest) -> tuple[float, float, int, str]:
    return (-test.wasted_time, -test.flake_rate, -test.fail_count, test.test_id)


def filter_by_classification(
    tests: Sequence[AggregatedTest], classification: Classification
) -> Sequence[AggregatedTest]:
    """Return the tests with the given classification, keeping their order."""
    return [test for test in tests if test.classification == classification]


def top_flakes(
    tests: Sequence[AggregatedTest], limit: int = DEFAULT_TOP_FLAKES
) -> Sequence[AggregatedTest]:
    """Return the first ``limit`` flaky tests of a ranked list."""
    return filter_by_classification(tests, "flaky")[: max(limit, 0)]


def signature_summary(
    tests: Sequence[AggregatedTest],
) -> Mapping[FailureSignature, int]:
    """Count failure evidence entries per signature across all tests.

    Returns:
        Signature counts ordered by count (descending), then name (ascending)

    """
    counts = Counter(
        evidence.signature for test in tests for evidence in test.failure_evidence
    )
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))
