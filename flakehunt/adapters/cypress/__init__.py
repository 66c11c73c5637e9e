"""Cypress adapter module."""

from flakehunt.adapters.cypress.adapter import CypressAdapter
from flakehunt.adapters.cypress.manifest import cypress_manifest

__all__ = ["CypressAdapter", "cypress_manifest"]
