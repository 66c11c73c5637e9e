"""Jest adapter module."""

from flakehunt.adapters.jest.adapter import JestAdapter
from flakehunt.adapters.jest.manifest import jest_manifest

__all__ = ["JestAdapter", "jest_manifest"]
