"""Run orchestrator for executing a test command repeatedly."""

import asyncio
import codecs
import logging
import shutil
import sys
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import BinaryIO, TextIO

from flakehunt.adapters.base import OutcomeAdapter
from flakehunt.config import SessionConfig
from flakehunt.models.outcome import RunRecord

log = logging.getLogger(__name__)

LATEST_DIRNAME = "latest"
RUNS_DIRNAME = "runs"
STDOUT_FILENAME = "stdout.txt"
STDERR_FILENAME = "stderr.txt"
CHUNK_SIZE = 64 * 1024


class RunExecutionError(Exception):
    """Raised when a run's child process cannot be started."""


class MissingArtifactError(Exception):
    """Raised when a run finished without producing the expected artifact."""


@dataclass(frozen=True, kw_only=True)
class SessionResult:
    """Outcome of one session: every run's record in execution order."""

    records: Sequence[RunRecord]
    runs_executed: int
    latest_dir: Path

    @property
    def successful_records(self) -> Sequence[RunRecord]:
        """Records that carry test data."""
        return [record for record in self.records if record.has_data]


@dataclass(frozen=True, kw_only=True)
class RunOrchestrator:
    """Runs the adapted test command up to ``config.runs`` times, one at a time.

    Each instance owns one session. Cancellation and the timeout are observed
    between runs; a cancellation requested while a run is in progress also
    terminates that run's child process.
    """

    config: SessionConfig
    adapter: OutcomeAdapter
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    clock: Callable[[], float] = time.monotonic
    stdout: TextIO | None = None
    stderr: TextIO | None = None

    @property
    def latest_dir(self) -> Path:
        return self.config.out_dir.absolute() / LATEST_DIRNAME

    @property
    def runs_dir(self) -> Path:
        return self.latest_dir / RUNS_DIRNAME

    def cancel(self) -> None:
        """Request that no further runs are started."""
        self.cancel_event.set()

    async def run(self) -> SessionResult:
        """Execute the session.

        Returns:
            Records for every run that was started, in execution order

        Raises:
            RuntimeError: If the output directory cannot be prepared

        """
        self._prepare_output_dir()

        records: list[RunRecord] = []
        started = self.clock()

        for run_index in range(1, self.config.runs + 1):
            if self._timed_out(started):
                log.info(
                    "Timeout of %.1fs reached, stopping after %d run(s)",
                    self.config.timeout,
                    len(records),
                )
                break

            if self.cancel_event.is_set():
                log.info(
                    "Cancellation requested, stopping after %d run(s)", len(records)
                )
                break

            log.info("Starting run %d/%d", run_index, self.config.runs)
            records.append(await self._run_once(run_index))

        if self.config.keep_runs:
            try:
                cleanup_old_runs(self.runs_dir, self.config.keep_runs)
            except OSError as e:
                log.warning("Failed to clean up old runs: %s", e)

        return SessionResult(
            records=records,
            runs_executed=len(records),
            latest_dir=self.latest_dir,
        )

    def _timed_out(self, started: float) -> bool:
        if self.config.timeout is None:
            return False
        return self.clock() - started >= self.config.timeout

    def _prepare_output_dir(self) -> None:
        """Replace the previous session's artifacts with an empty tree."""
        try:
            if self.latest_dir.exists():
                shutil.rmtree(self.latest_dir)
            self.runs_dir.mkdir(parents=True)
        except OSError as e:
            raise RuntimeError(
                f"Failed to prepare output directory {self.latest_dir}: {e}"
            ) from e

    async def _run_once(self, run_index: int) -> RunRecord:
        """Execute one run, converting any failure into an error record."""
        run_dir = self.runs_dir / f"{run_index:03d}"

        try:
            run_dir.mkdir(parents=True, exist_ok=True)
            record = await self._execute(run_dir)
        except Exception as e:
            log.error("Run %d failed: %s", run_index, e)
            return RunRecord(run_index=run_index, error=str(e))

        log.info("Run %d completed: %d test(s) parsed", run_index, len(record.tests))
        return replace(record, run_index=run_index)

    async def _execute(self, run_dir: Path) -> RunRecord:
        command = self.adapter.build_command(run_dir, self.config.command)
        if not command:
            raise RunExecutionError("Adapter returned an empty command")

        log.debug("Executing: %s (cwd=%s)", " ".join(command), self.config.working_dir)

        with (
            (run_dir / STDOUT_FILENAME).open("wb") as stdout_file,
            (run_dir / STDERR_FILENAME).open("wb") as stderr_file,
        ):
            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=self.config.working_dir,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise RunExecutionError(
                    f"Failed to start command {command[0]!r}: {e}"
                ) from e

            returncode = await self._wait(process, stdout_file, stderr_file)

        # A non-zero exit code usually means tests failed; the artifact decides.
        log.info("Command exited with code %d", returncode)

        artifact = self.adapter.expected_artifact(run_dir)
        if not artifact.exists():
            raise MissingArtifactError(
                f"Expected artifact not found: {artifact}. "
                "Ensure the test command produces the required output file"
            )

        return self.adapter.parse(run_dir)

    async def _wait(
        self,
        process: asyncio.subprocess.Process,
        stdout_file: BinaryIO,
        stderr_file: BinaryIO,
    ) -> int:
        """Wait for the child while copying its output to files and our streams."""
        if process.stdout is None or process.stderr is None:
            process.kill()
            await process.wait()
            raise RunExecutionError("Command output streams are not available")

        copy_tasks = [
            asyncio.create_task(
                _tee(process.stdout, stdout_file, self.stdout or sys.stdout)
            ),
            asyncio.create_task(
                _tee(process.stderr, stderr_file, self.stderr or sys.stderr)
            ),
        ]
        wait_task = asyncio.create_task(process.wait())
        cancel_task = asyncio.create_task(self.cancel_event.wait())

        try:
            await asyncio.wait(
                {wait_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if not wait_task.done():
                log.warning("Cancellation requested, terminating running command")
                process.terminate()
            returncode = await wait_task
            await asyncio.gather(*copy_tasks)
            return returncode
        finally:
            cancel_task.cancel()
            if process.returncode is None:
                process.kill()
                await process.wait()
            for task in copy_tasks:
                task.cancel()


async def _tee(reader: asyncio.StreamReader, file: BinaryIO, mirror: TextIO) -> None:
    """Copy a child's output stream to a file and mirror it live."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while chunk := await reader.read(CHUNK_SIZE):
        file.write(chunk)
        mirror.write(decoder.decode(chunk))
        mirror.flush()
    mirror.write(decoder.decode(b"", final=True))


def cleanup_old_runs(runs_dir: Path, keep_runs: int) -> None:
    """Delete the oldest run directories so that at most ``keep_runs`` remain.

    Raises:
        OSError: If a directory cannot be listed or removed

    """
    run_dirs = sorted(
        (path for path in runs_dir.iterdir() if path.is_dir() and path.name.isdigit()),
        key=lambda path: int(path.name),
    )
    for path in run_dirs[: max(len(run_dirs) - keep_runs, 0)]:
        log.debug("Removing old run directory %s", path)
        shutil.rmtree(path)
