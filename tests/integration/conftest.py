"""Fixtures for integration tests: scripted stand-ins for real test tools."""

import sys
import textwrap
from collections.abc import Sequence
from pathlib import Path

import pytest

# Fails "checkout > retries payment" on every second invocation, counted in the
# file named by the first argument.
FAKE_JEST = textwrap.dedent(
    """
    import json
    import sys
    from pathlib import Path

    counter = Path(sys.argv[1])
    invocation = int(counter.read_text()) + 1 if counter.exists() else 1
    counter.write_text(str(invocation))

    output = Path(sys.argv[sys.argv.index("--outputFile") + 1])
    flaky_passed = invocation % 2 == 1
    report = {
        "numTotalTests": 3,
        "success": flaky_passed,
        "testResults": [
            {
                "name": "/app/src/checkout.test.js",
                "status": "passed" if flaky_passed else "failed",
                "assertionResults": [
                    {
                        "fullName": "checkout renders",
                        "status": "passed",
                        "duration": 12,
                        "failureMessages": [],
                    },
                    {
                        "fullName": "checkout retries payment",
                        "status": "passed" if flaky_passed else "failed",
                        "duration": 400,
                        "failureMessages": (
                            [] if flaky_passed
                            else ["Error: connect ECONNREFUSED 127.0.0.1:4000"]
                        ),
                    },
                    {
                        "fullName": "checkout applies coupon",
                        "status": "failed",
                        "duration": 30,
                        "failureMessages": ["expect(received).toBe(expected)"],
                    },
                ],
            }
        ],
    }
    print(f"fake jest run {invocation}")
    output.write_text(json.dumps(report))
    sys.exit(0 if flaky_passed else 1)
    """
)

# Writes one JUnit file per spec; "login" times out on the second invocation.
FAKE_CYPRESS = textwrap.dedent(
    """
    import sys
    from pathlib import Path

    counter = Path(sys.argv[1])
    invocation = int(counter.read_text()) + 1 if counter.exists() else 1
    counter.write_text(str(invocation))

    options = sys.argv[sys.argv.index("--reporter-options") + 1]
    pattern = options.removeprefix("mochaFile=")

    login_case = (
        '<testcase classname="login" name="signs in" time="2.0">'
        '<failure message="Timed out retrying after 4000ms">'
        "cy.click() timed out</failure></testcase>"
        if invocation == 2
        else '<testcase classname="login" name="signs in" time="2.0"/>'
    )
    specs = {
        "login": login_case,
        "search": (
            '<testcase classname="search" name="finds items" time="0.5"/>'
            '<testcase classname="search" name="filters" time="0.1">'
            "<skipped/></testcase>"
        ),
    }
    for spec, cases in specs.items():
        xml = f'<testsuites><testsuite name="{spec}">{cases}</testsuite></testsuites>'
        Path(pattern.replace("[hash]", spec)).write_text(xml)
    sys.exit(1 if invocation == 2 else 0)
    """
)


def write_script(directory: Path, name: str, source: str) -> Sequence[str]:
    script = directory / name
    script.write_text(source)
    return [sys.executable, str(script), str(directory / f"{name}.count")]


@pytest.fixture
def fake_jest(tmp_path: Path) -> Sequence[str]:
    """Command running a Jest stand-in that writes a JSON report."""
    return write_script(tmp_path, "fake_jest.py", FAKE_JEST)


@pytest.fixture
def fake_cypress(tmp_path: Path) -> Sequence[str]:
    """Command running a Cypress stand-in that writes JUnit XML reports."""
    return write_script(tmp_path, "fake_cypress.py", FAKE_CYPRESS)
