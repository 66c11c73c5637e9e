"""Cypress adapter manifest."""

from flakehunt.adapters.cypress.adapter import CypressAdapter
from flakehunt.adapters.manifest import AdapterManifest

cypress_manifest = AdapterManifest(
    adapter_factory=CypressAdapter,
    keywords=("cypress",),
)
