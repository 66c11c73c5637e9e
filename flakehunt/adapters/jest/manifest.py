"""Jest adapter manifest."""

from flakehunt.adapters.jest.adapter import JestAdapter
from flakehunt.adapters.manifest import AdapterManifest

jest_manifest = AdapterManifest(
    adapter_factory=JestAdapter,
    keywords=("jest",),
)
