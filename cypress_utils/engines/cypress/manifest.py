"""Cypress engine manifest."""

from cypress_utils.engines.cypress.config import CypressEngineConfig
from cypress_utils.engines.cypress.engine import CypressEngine
from cypress_utils.engines.manifest import EngineManifest

cypress_manifest = EngineManifest(
    config_cls=CypressEngineConfig,
    engine_factory=CypressEngine.from_config,
)
