"""Models for per-run test outcomes produced by adapters."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

type Outcome = Literal["pass", "fail", "skip"]

type Classification = Literal["flaky", "stable", "deterministic_fail"]

type FailureSignature = Literal[
    "TIMEOUT",
    "SELECTOR",
    "NETWORK",
    "DOM_DETACH",
    "ASSERTION",
    "UNKNOWN",
]


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Outcome of one test identity in one run."""

    __test__ = False

    test_id: str
    outcome: Outcome
    duration: float = 0.0
    failure_message: str | None = None


@dataclass(frozen=True, kw_only=True)
class RunRecord:
    """Outcomes of every test observed in one execution of the command.

    A record carrying ``error`` could not be parsed; the run still counts as
    executed but contributes no test data.
    """

    run_index: int = 0
    tests: Sequence[TestOutcome] = field(default_factory=tuple)
    error: str | None = None

    @property
    def has_data(self) -> bool:
        return self.error is None
