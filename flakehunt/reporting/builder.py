"""Assembly of the session report from aggregated tests."""

from collections import Counter
from collections.abc import Sequence

from flakehunt.aggregation import DEFAULT_TOP_FLAKES, signature_summary, top_flakes
from flakehunt.models.report import AggregatedTest, Report


def build_report(
    tool: str,
    target: str,
    runs_executed: int,
    tests: Sequence[AggregatedTest],
    top_limit: int = DEFAULT_TOP_FLAKES,
) -> Report:
    """Build the report for a ranked list of aggregated tests."""
    counts = Counter(test.classification for test in tests)

    return Report(
        tool=tool,
        target=target,
        runs_executed=runs_executed,
        flaky_count=counts["flaky"],
        stable_count=counts["stable"],
        deterministic_fail_count=counts["deterministic_fail"],
        tests=tests,
        top_flakes=top_flakes(tests, top_limit),
        signature_summary=signature_summary(tests),
    )
