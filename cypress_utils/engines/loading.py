"""Lookup of execution engines registered under an entry point group."""

import logging
from importlib.metadata import entry_points
from typing import Any

from cypress_utils.engines.cypress import cypress_manifest
from cypress_utils.engines.manifest import EngineManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "cypress_utils.engines"
BUILTIN_ENGINES: dict[str, EngineManifest[Any]] = {"cypress": cypress_manifest}


class EngineNotFoundError(Exception):
    """Raised when an engine key does not name a usable engine."""


def available_engines() -> list[str]:
    """List registered engine keys, built-in ones included."""
    names = {entry.name for entry in entry_points(group=ENTRY_POINT_GROUP)}
    return sorted(names.union(BUILTIN_ENGINES))


def load_engine_manifest(key: str) -> EngineManifest[Any]:
    """Load an engine manifest by key.

    Registered entry points take precedence, so a plugin can replace a
    built-in engine. Built-in engines stay usable from a source checkout
    where no entry points are installed.

    Raises:
        EngineNotFoundError: If the key is unknown, its module cannot be
            imported or it does not point at an EngineManifest

    """
    matches = entry_points(group=ENTRY_POINT_GROUP, name=key)
    if not matches:
        if key in BUILTIN_ENGINES:
            return BUILTIN_ENGINES[key]
        raise EngineNotFoundError(
            f"Unknown engine '{key}'. "
            f"Available engines: {', '.join(available_engines())}"
        )

    entry = next(iter(matches))
    try:
        loaded = entry.load()
    except (ImportError, AttributeError) as e:
        raise EngineNotFoundError(
            f"Engine '{key}' could not be loaded from {entry.value}: {e}"
        ) from e

    if not isinstance(loaded, EngineManifest):
        raise EngineNotFoundError(
            f"Engine '{key}' points at {entry.value}, which is not an engine "
            f"manifest but {type(loaded).__name__}"
        )

    log.debug("Loaded engine '%s' from %s", key, entry.value)
    return loaded
