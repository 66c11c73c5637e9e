"""Jest outcome adapter."""

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import ValidationError

from flakehunt.adapters.base import ArtifactParseError, OutcomeAdapter
from flakehunt.adapters.jest.models import JestReport
from flakehunt.models.outcome import Outcome, RunRecord, TestOutcome

log = logging.getLogger(__name__)

ARTIFACT_FILENAME = "jest.json"

EXECUTION_MODE_FLAGS = ("--runInBand", "--maxWorkers", "-w", "--workerThreads")

STATUS_TO_OUTCOME: Mapping[str, Outcome] = {
    "passed": "pass",
    "failed": "fail",
    "pending": "skip",
    "skipped": "skip",
    "todo": "skip",
    "disabled": "skip",
}


class JestAdapter(OutcomeAdapter):
    """Runs Jest with JSON output and reads the resulting report."""

    def build_command(self, run_dir: Path, command: Sequence[str]) -> Sequence[str]:
        """Inject ``--json --outputFile`` and, by default, ``--runInBand``.

        ``--runInBand`` is only added when the user did not choose an
        execution mode, to reduce concurrency noise between test files.
        """
        if not command:
            return []

        result = list(command)
        if not has_execution_mode(command):
            result.append("--runInBand")
        result.extend(["--json", "--outputFile", str(self.expected_artifact(run_dir))])
        return result

    def parse(self, run_dir: Path) -> RunRecord:
        """Parse ``jest.json`` into outcomes ordered by test identity."""
        artifact = self.expected_artifact(run_dir)

        try:
            data = artifact.read_text(encoding="utf-8")
        except OSError as e:
            raise ArtifactParseError(
                artifact,
                f"failed to read file: {e}",
                "Ensure Jest completed and produced output. "
                "Check that --outputFile was used correctly.",
            ) from e

        if not data.strip():
            raise ArtifactParseError(
                artifact,
                "file is empty",
                "Ensure Jest completed successfully. "
                "The JSON output file should not be empty.",
            )

        try:
            report = JestReport.model_validate(json.loads(data))
        except json.JSONDecodeError as e:
            raise ArtifactParseError(
                artifact,
                f"invalid JSON: {e}",
                "Ensure Jest produced valid JSON output. "
                "The file may be corrupted or incomplete.",
            ) from e
        except ValidationError as e:
            raise ArtifactParseError(
                artifact,
                f"unexpected report structure: {e.error_count()} validation error(s)",
                "Ensure the file was written by 'jest --json'.",
            ) from e

        tests = extract_outcomes(report, artifact)
        log.debug("Parsed %d test(s) from %s", len(tests), artifact)
        return RunRecord(tests=sorted(tests.values(), key=lambda t: t.test_id))

    def expected_artifact(self, run_dir: Path) -> Path:
        """Return the path of the Jest JSON report."""
        return run_dir / ARTIFACT_FILENAME


def has_execution_mode(command: Sequence[str]) -> bool:
    """Check whether the user already chose how Jest schedules test files."""
    return any(
        arg == "-i" or arg.startswith(EXECUTION_MODE_FLAGS) for arg in command
    )


def extract_outcomes(report: JestReport, artifact: Path) -> dict[str, TestOutcome]:
    """Convert a Jest report into outcomes keyed by test identity.

    Identities are ``<test file>::<full test name>``. A repeated identity keeps
    its last occurrence.
    """
    tests: dict[str, TestOutcome] = {}

    for i, file_result in enumerate(report.test_results):
        if not file_result.name:
            raise ArtifactParseError(
                artifact,
                f"testResults[{i}].name is missing or empty",
                "Jest output is malformed. Each test result must have a 'name' "
                "field containing the file path.",
            )

        for j, assertion in enumerate(file_result.assertion_results):
            location = f"testResults[{i}].assertionResults[{j}]"
            if not assertion.full_name:
                raise ArtifactParseError(
                    artifact,
                    f"{location}.fullName is missing or empty",
                    "Jest output is malformed. Each assertion result must have "
                    "a 'fullName' field.",
                )
            if not assertion.status:
                raise ArtifactParseError(
                    artifact,
                    f"{location}.status is missing or empty",
                    "Jest output is malformed. Each assertion result must have "
                    "a 'status' field.",
                )
            if (outcome := STATUS_TO_OUTCOME.get(assertion.status)) is None:
                raise ArtifactParseError(
                    artifact,
                    f"{location}.status has unknown value: {assertion.status!r}",
                    "Jest produced an unexpected status value. Expected one of: "
                    f"{', '.join(STATUS_TO_OUTCOME)}.",
                )

            test_id = f"{file_result.name}::{assertion.full_name}"
            tests[test_id] = TestOutcome(
                test_id=test_id,
                outcome=outcome,
                duration=(assertion.duration or 0) / 1000,
                failure_message="\n".join(assertion.failure_messages or ()) or None,
            )

    return tests
