"""Pydantic models for the Jest JSON report."""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field


class AssertionResult(BaseModel):
    """A single test case inside a Jest test file."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(default="", alias="fullName")
    status: str = ""
    title: str = ""
    duration: float | None = None
    failure_messages: Sequence[str] | None = Field(
        default=None, alias="failureMessages"
    )


class TestFileResult(BaseModel):
    """Results of one Jest test file."""

    __test__ = False

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    status: str = ""
    assertion_results: Sequence[AssertionResult] = Field(
        default_factory=list, alias="assertionResults"
    )


class JestReport(BaseModel):
    """Top-level structure written by ``jest --json``."""

    model_config = ConfigDict(populate_by_name=True)

    num_total_tests: int = Field(default=0, alias="numTotalTests")
    num_failed_tests: int = Field(default=0, alias="numFailedTests")
    success: bool = False
    test_results: Sequence[TestFileResult] = Field(
        default_factory=list, alias="testResults"
    )
