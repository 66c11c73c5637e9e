"""Cypress outcome adapter reading JUnit XML reports."""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from pathlib import Path

from flakehunt.adapters.base import ArtifactParseError, OutcomeAdapter
from flakehunt.models.outcome import Outcome, RunRecord, TestOutcome

log = logging.getLogger(__name__)

MAX_FAILURE_MESSAGE_LENGTH = 500


class CypressAdapter(OutcomeAdapter):
    """Runs Cypress with the JUnit reporter and reads every XML file it writes.

    Cypress writes one XML file per spec, and retried tests may appear more
    than once across them; the last occurrence of a test wins.
    """

    def build_command(self, run_dir: Path, command: Sequence[str]) -> Sequence[str]:
        """Configure the JUnit reporter to write into ``run_dir``."""
        if not command:
            return []

        return [
            *command,
            "--reporter",
            "junit",
            "--reporter-options",
            f"mochaFile={run_dir}/[hash].xml",
        ]

    def parse(self, run_dir: Path) -> RunRecord:
        """Parse all ``*.xml`` files in ``run_dir`` in name order."""
        xml_files = sorted(run_dir.glob("*.xml"))
        if not xml_files:
            raise ArtifactParseError(
                run_dir,
                "no XML files found",
                "Ensure Cypress is configured with the JUnit reporter.",
            )

        tests: dict[str, TestOutcome] = {}
        for xml_file in xml_files:
            for test in parse_junit_file(xml_file):
                tests[test.test_id] = test

        log.debug("Parsed %d test(s) from %d file(s)", len(tests), len(xml_files))
        return RunRecord(tests=[tests[test_id] for test_id in sorted(tests)])

    def expected_artifact(self, run_dir: Path) -> Path:
        """Return the run directory; individual files are checked while parsing."""
        return run_dir


def parse_junit_file(xml_file: Path) -> Sequence[TestOutcome]:
    """Parse one JUnit XML file into outcomes, in document order.

    Accepts either a ``<testsuites>`` root or a single ``<testsuite>`` root.
    """
    try:
        data = xml_file.read_bytes()
    except OSError as e:
        raise ArtifactParseError(
            xml_file, f"failed to read file: {e}", "Check file permissions."
        ) from e

    if not data.strip():
        raise ArtifactParseError(
            xml_file,
            "file is empty",
            "Ensure Cypress completed and the reporter flushed its output.",
        )

    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ArtifactParseError(
            xml_file,
            f"invalid XML: {e}",
            "The file may be corrupted or incomplete.",
        ) from e

    if root.tag == "testsuites":
        suites = root.findall("testsuite")
    elif root.tag == "testsuite":
        suites = [root]
    else:
        suites = []

    cases = [case for suite in suites for case in suite.findall("testcase")]
    if not suites or (root.tag == "testsuite" and not cases):
        raise ArtifactParseError(
            xml_file,
            "invalid JUnit format or no test cases found",
            "Ensure the file was written by a JUnit reporter.",
        )

    return [_build_outcome(case, xml_file) for case in cases]


def _build_outcome(case: ET.Element, xml_file: Path) -> TestOutcome:
    classname = case.get("classname", "").strip()
    name = case.get("name", "").strip()
    if not classname or not name:
        raise ArtifactParseError(
            xml_file,
            "test case is missing its classname or name attribute",
            "Ensure the JUnit reporter includes classname and name for each test.",
        )

    failure = case.find("failure")
    if failure is None:
        failure = case.find("error")

    outcome: Outcome
    if case.find("skipped") is not None:
        outcome = "skip"
    elif failure is not None:
        outcome = "fail"
    else:
        outcome = "pass"

    return TestOutcome(
        test_id=f"{classname}::{name}",
        outcome=outcome,
        duration=_parse_time(case.get("time")),
        failure_message=(
            extract_failure_message(failure.get("message"), failure.text)
            if failure is not None
            else None
        ),
    )


def _parse_time(value: str | None) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def extract_failure_message(message: str | None, content: str | None) -> str:
    """Prefer the ``message`` attribute, falling back to the element text."""
    text = (message or "").strip() or (content or "").strip()
    if len(text) > MAX_FAILURE_MESSAGE_LENGTH:
        text = text[:MAX_FAILURE_MESSAGE_LENGTH] + "..."
    return text
