"""Abstract base class for test-tool outcome adapters."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from flakehunt.models.outcome import RunRecord


class ArtifactParseError(Exception):
    """Raised when a run's artifact cannot be turned into test outcomes.

    The message names the offending file, what is wrong with it and what the
    user can do about it.
    """

    def __init__(self, file: Path, message: str, action: str) -> None:
        self.file = file
        self.message = message
        self.action = action
        super().__init__(f"parse error in {file}: {message}. {action}")


class OutcomeAdapter(ABC):
    """Translates a test tool's invocation and output into canonical outcomes.

    Implementations own the tool-specific policies: how to make the tool emit
    a machine-readable artifact, how to read it back, and how to collapse
    repeated occurrences of a test (the last occurrence wins).
    """

    @abstractmethod
    def build_command(self, run_dir: Path, command: Sequence[str]) -> Sequence[str]:
        """Return the command to execute for one run.

        Args:
            run_dir: Directory where the tool must write its artifact
            command: Base command supplied by the user, left unmodified

        Returns:
            The augmented argument list, or an empty list for an empty command

        """

    @abstractmethod
    def parse(self, run_dir: Path) -> RunRecord:
        """Read the artifact written to ``run_dir``.

        Returns:
            A run record with tests ordered by identity. The run index is
            assigned by the caller.

        Raises:
            ArtifactParseError: If the artifact is missing, empty, malformed or
                lacks a required field

        """

    @abstractmethod
    def expected_artifact(self, run_dir: Path) -> Path:
        """Return the path that must exist after a run before parsing."""
