"""Run settings resolved once at startup and passed down explicitly."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import Field

from cypress_utils.models.base import Model

DEFAULT_CONFIG_FILE = Path("cypress.json")
DEFAULT_SPEC_ROOT = "cypress/integration"
DEFAULT_TEST_FILES = "**/*.*"
DEFAULT_THREADS = 2
DEFAULT_TRIAL_COUNT = 4

type Command = Literal["run-parallel", "stress-test"]


@dataclass(frozen=True)
class ConfigFileDisabled:
    """The engine must not read any config file."""


@dataclass(frozen=True)
class ConfigFilePath:
    """The engine reads its config from this file."""

    path: Path


type ConfigFileSource = ConfigFileDisabled | ConfigFilePath


@dataclass(frozen=True, kw_only=True)
class RunOptions:
    """Options handed to the engine with every execution."""

    config_file: ConfigFileSource = ConfigFileDisabled()
    config_overrides: Mapping[str, Any] | None = None


class RunSettings(Model):
    """Everything a command needs, resolved from flags, config file and defaults."""

    command: Command
    identifiers: Sequence[str] = Field(default_factory=tuple)
    threads: int = Field(default=DEFAULT_THREADS, ge=1)
    trial_count: int = Field(default=DEFAULT_TRIAL_COUNT, ge=1)
    spec_root: Path = Path(DEFAULT_SPEC_ROOT)
    test_files: str = DEFAULT_TEST_FILES
    exclude_patterns: Sequence[str] = Field(default_factory=tuple)
    config_file: ConfigFileDisabled | ConfigFilePath = ConfigFileDisabled()
    config_overrides: Mapping[str, Any] = Field(default_factory=dict)
    engine: str = "cypress"
    engine_config: Mapping[str, Any] = Field(default_factory=dict)

    def run_options(self) -> RunOptions:
        """Build the per-execution engine options."""
        return RunOptions(
            config_file=self.config_file,
            config_overrides=self.config_overrides or None,
        )
