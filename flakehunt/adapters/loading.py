"""Loading of adapters from entry points."""

from collections.abc import Sequence
from importlib.metadata import EntryPoint, entry_points

from flakehunt.adapters.manifest import AdapterManifest

ENTRY_POINT_GROUP = "flakehunt.adapters"


class AdapterNotFoundError(Exception):
    """Raised when no adapter can be resolved."""


def _adapter_entry_points() -> Sequence[EntryPoint]:
    return sorted(entry_points(group=ENTRY_POINT_GROUP), key=lambda e: e.name)


def load_adapter_manifest(key: str) -> AdapterManifest:
    """Load an adapter manifest by key.

    Args:
        key: The adapter key as registered in pyproject.toml (e.g., "jest")

    Returns:
        The adapter manifest instance

    Raises:
        AdapterNotFoundError: If no adapter with the given key is found

    """
    entries = _adapter_entry_points()

    for entry in entries:
        if entry.name == key:
            manifest: AdapterManifest = entry.load()
            return manifest

    available = [e.name for e in entries]
    raise AdapterNotFoundError(
        f"Adapter '{key}' not found. Available adapters: {available}"
    )


def detect_adapter(command: Sequence[str]) -> tuple[str, AdapterManifest]:
    """Detect the adapter for a command from the tool named in it.

    Adapters are tried in key order; the first whose keywords appear in the
    command wins.

    Returns:
        The adapter key and its manifest

    Raises:
        AdapterNotFoundError: If no adapter recognises the command

    """
    entries = _adapter_entry_points()

    for entry in entries:
        manifest: AdapterManifest = entry.load()
        if manifest.matches(command):
            return entry.name, manifest

    available = [e.name for e in entries]
    raise AdapterNotFoundError(
        f"Could not detect test tool from command {' '.join(command)!r}. "
        f"Use --tool or a command naming one of: {available}"
    )
