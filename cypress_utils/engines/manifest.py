"""Engine manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import BaseModel

from cypress_utils.engines.base import ExecutionEngine


@dataclass(frozen=True, kw_only=True)
class EngineManifest[ConfigT: BaseModel]:
    """Manifest describing an engine plugin.

    The manifest holds the engine configuration class and a factory returning
    an async context manager, so engines are only built once selected by key.
    """

    config_cls: type[ConfigT]
    engine_factory: Callable[[ConfigT], AbstractAsyncContextManager[ExecutionEngine]]
