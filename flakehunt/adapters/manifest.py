"""Adapter manifest definition for the plugin system."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from flakehunt.adapters.base import OutcomeAdapter


@dataclass(frozen=True, kw_only=True)
class AdapterManifest:
    """Manifest describing an adapter plugin.

    The manifest references the adapter factory for lazy construction and the
    keywords that identify the tool in a user's command line.
    """

    adapter_factory: Callable[[], OutcomeAdapter]
    keywords: Sequence[str]

    def matches(self, command: Sequence[str]) -> bool:
        """Check whether any keyword appears in the command line."""
        command_line = " ".join(command).lower()
        return any(keyword.lower() in command_line for keyword in self.keywords)
