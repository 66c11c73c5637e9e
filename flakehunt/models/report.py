"""Models for aggregated results and the final report."""

from collections.abc import Mapping, Sequence

from pydantic import Field

from flakehunt.models.base import ReportModel
from flakehunt.models.outcome import Classification, FailureSignature


class FailureEvidence(ReportModel):
    """One observed failure of a test."""

    run_index: int = Field(..., description="1-based index of the failing run")
    excerpt: str = Field(default="", description="Normalised failure excerpt")
    signature: FailureSignature = Field(default="UNKNOWN")


class AggregatedTest(ReportModel):
    """Summary of one test identity across every run of a session."""

    test_id: str
    pass_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    total_runs: int = Field(default=0, description="pass + fail, skips excluded")
    avg_duration: float = Field(default=0.0, description="Seconds")
    classification: Classification = "stable"
    flake_rate: float = 0.0
    wasted_time: float = Field(default=0.0, description="Seconds")
    failure_evidence: Sequence[FailureEvidence] = Field(default_factory=tuple)


class Report(ReportModel):
    """Top-level report for one session."""

    tool: str
    target: str
    runs_executed: int
    flaky_count: int = 0
    stable_count: int = 0
    deterministic_fail_count: int = 0
    tests: Sequence[AggregatedTest] = Field(default_factory=tuple)
    top_flakes: Sequence[AggregatedTest] = Field(default_factory=tuple)
    signature_summary: Mapping[str, int] = Field(default_factory=dict)
