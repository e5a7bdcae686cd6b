"""Cypress engine module."""

from cypress_utils.engines.cypress.config import CypressEngineConfig
from cypress_utils.engines.cypress.engine import CypressEngine
from cypress_utils.engines.cypress.manifest import cypress_manifest

__all__ = ["CypressEngine", "CypressEngineConfig", "cypress_manifest"]
