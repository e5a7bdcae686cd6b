"""Load the Cypress config file and resolve run settings from CLI flags."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError

from cypress_utils.models.base import Model
from cypress_utils.models.settings import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_SPEC_ROOT,
    DEFAULT_TEST_FILES,
    DEFAULT_THREADS,
    DEFAULT_TRIAL_COUNT,
    Command,
    ConfigFileDisabled,
    ConfigFilePath,
    ConfigFileSource,
    RunSettings,
)

log = logging.getLogger(__name__)

DISABLED_VALUES = frozenset(["false", "0", "no", "off"])
DISCOVERY_KEYS = frozenset(["integrationFolder", "testFiles", "ignoreTestFiles"])
# Cypress 10+ config files are JavaScript modules, only Cypress can evaluate them.
DATA_SUFFIXES = frozenset([".json", ".yaml", ".yml"])


class ProjectConfig(Model):
    """Subset of the Cypress config that drives spec discovery."""

    integration_folder: str | None = Field(default=None, alias="integrationFolder")
    test_files: str | None = Field(default=None, alias="testFiles")
    ignore_test_files: str | Sequence[str] | None = Field(
        default=None, alias="ignoreTestFiles"
    )

    def ignore_patterns(self) -> Sequence[str]:
        """Return ignoreTestFiles as a sequence of globs."""
        if self.ignore_test_files is None:
            return ()
        if isinstance(self.ignore_test_files, str):
            return (self.ignore_test_files,)
        return tuple(self.ignore_test_files)


def parse_config_file_flag(
    value: str | None, project: str | None = None
) -> ConfigFileSource:
    """Decide once whether the engine reads a config file, and which one.

    ``None`` means the flag was not given: the conventional file of the
    Cypress project (the current directory unless project is set) is used when
    present. A false-like value disables the config file entirely. Explicit
    paths are taken relative to the current directory.
    """
    if value is None:
        conventional = Path(project or ".") / DEFAULT_CONFIG_FILE
        if conventional.is_file():
            return ConfigFilePath(conventional)
        return ConfigFileDisabled()
    if value.strip().lower() in DISABLED_VALUES:
        return ConfigFileDisabled()
    return ConfigFilePath(Path(value))


def parse_config_overrides(raw: str | None) -> Mapping[str, Any]:
    """Parse ``key=value,key2=value2`` into a mapping with typed scalars."""
    if raw is None or not raw.strip():
        return {}

    overrides: dict[str, Any] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid config override '{pair}', expected key=value")
        try:
            overrides[key.strip()] = yaml.safe_load(value.strip())
        except yaml.YAMLError:
            overrides[key.strip()] = value.strip()
    return overrides


async def load_project_config(config_file: Path) -> ProjectConfig:
    """Load the spec discovery settings of a Cypress config file.

    JSON and YAML files are parsed. Any other file, such as
    ``cypress.config.js``, is left to Cypress and yields empty settings.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is malformed or has an invalid shape

    """
    if not config_file.is_file():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    if config_file.suffix.lower() not in DATA_SUFFIXES:
        log.info("Not reading %s, spec discovery uses defaults", config_file)
        return ProjectConfig()

    content = await asyncio.to_thread(config_file.read_text)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config file {config_file}: {e}") from e

    if data is None:
        return ProjectConfig()

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config file schema in {config_file}: {e}") from e


async def build_settings(
    *,
    command: Command,
    identifiers: Sequence[str] = (),
    threads: int | None = None,
    trial_count: int | None = None,
    config_file_flag: str | None = None,
    config_overrides: str | None = None,
    spec_root: str | None = None,
    exclude_patterns: Sequence[str] | None = None,
    test_files: str | None = None,
    engine: str = "cypress",
    engine_config: Mapping[str, Any] | None = None,
) -> RunSettings:
    """Merge CLI flags, inline overrides, the config file and defaults.

    Precedence per field: explicit flag, then inline override, then the
    config file, then the built-in default.
    """
    engine_config = engine_config or {}
    if not isinstance(engine_config, Mapping):
        raise ValueError(f"Engine config must be an object, got {engine_config!r}")
    project_dir = engine_config.get("project")
    config_file = parse_config_file_flag(config_file_flag, project_dir)
    overrides = parse_config_overrides(config_overrides)

    project = ProjectConfig()
    if isinstance(config_file, ConfigFilePath):
        log.info("Reading config file %s", config_file.path)
        project = await load_project_config(config_file.path)
    project = project.model_copy(
        update=ProjectConfig.model_validate(
            {key: value for key, value in overrides.items() if key in DISCOVERY_KEYS}
        ).model_dump(exclude_unset=True)
    )

    # Folders named by Cypress itself are relative to the project.
    discovered_root = Path(project_dir or ".") / (
        project.integration_folder or DEFAULT_SPEC_ROOT
    )
    excludes = (
        exclude_patterns if exclude_patterns is not None else project.ignore_patterns()
    )

    return RunSettings(
        command=command,
        identifiers=tuple(dict.fromkeys(identifiers)),
        threads=threads if threads is not None else DEFAULT_THREADS,
        trial_count=trial_count if trial_count is not None else DEFAULT_TRIAL_COUNT,
        spec_root=Path(spec_root) if spec_root else discovered_root,
        test_files=test_files or project.test_files or DEFAULT_TEST_FILES,
        exclude_patterns=tuple(dict.fromkeys(excludes)),
        config_file=config_file,
        config_overrides=overrides,
        engine=engine,
        engine_config=engine_config,
    )
