"""Cypress engine implementation."""

import asyncio
import json
import logging
import tempfile
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cypress_utils.engines.base import EngineError, ExecutionEngine
from cypress_utils.engines.cypress.config import CypressEngineConfig
from cypress_utils.engines.cypress.models import CypressRunOutcome
from cypress_utils.models.result import PerFileRun, RunFailure, RunResult, RunSuccess
from cypress_utils.models.settings import ConfigFilePath, RunOptions

log = logging.getLogger(__name__)

# Runs ``cypress.run()`` and writes its resolved value to the output file.
# Invoked as ``node -e BRIDGE_SCRIPT <options.json> <results.json>``.
BRIDGE_SCRIPT = """
const fs = require('fs');
const [optionsPath, outputPath] = process.argv.slice(1);
const options = JSON.parse(fs.readFileSync(optionsPath, 'utf8'));
require('cypress')
  .run(options)
  .then((results) => fs.writeFileSync(outputPath, JSON.stringify(results)))
  .catch((err) => {
    console.error(err && err.stack ? err.stack : String(err));
    process.exit(1);
  });
"""

STDERR_TAIL_LINES = 5


@dataclass(frozen=True, kw_only=True)
class CypressEngine(ExecutionEngine):
    """Executes specs through the Cypress module API in a Node subprocess.

    Every execution gets its own scratch directory for the options and the
    results file, so concurrent executions never share files.
    """

    config: CypressEngineConfig
    workdir: Path = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: CypressEngineConfig
    ) -> AsyncGenerator["CypressEngine", None]:
        """Create engine with a managed scratch directory."""
        with tempfile.TemporaryDirectory(prefix="cypress-utils-") as workdir:
            yield cls(config=config, workdir=Path(workdir))

    async def execute(
        self,
        specs: Sequence[str],
        options: RunOptions,
    ) -> RunResult:
        """Run the specs in one Cypress invocation and parse its outcome."""
        run_dir = Path(await asyncio.to_thread(tempfile.mkdtemp, dir=self.workdir))
        options_file = run_dir / "options.json"
        output_file = run_dir / "results.json"
        await asyncio.to_thread(
            options_file.write_text,
            json.dumps(self.module_api_options(specs, options)),
        )

        command = [
            *self.config.node_command,
            "-e",
            BRIDGE_SCRIPT,
            str(options_file),
            str(output_file),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.project_dir,
                stdout=None if self.config.show_output else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineError(
                f"Could not start Cypress with '{self.config.node_command[0]}': {e}"
            ) from e

        _, stderr = await process.communicate()

        if not await asyncio.to_thread(output_file.exists):
            tail = stderr.decode(errors="replace").strip().splitlines()
            detail = "\n".join(tail[-STDERR_TAIL_LINES:]) or "no output"
            log.debug("Cypress exited with code %s: %s", process.returncode, detail)
            return RunFailure(
                cause=f"Cypress exited with code {process.returncode}: {detail}"
            )

        return parse_outcome(await asyncio.to_thread(output_file.read_text))

    def module_api_options(
        self, specs: Sequence[str], options: RunOptions
    ) -> Mapping[str, Any]:
        """Build the options object passed to ``cypress.run()``.

        Cypress runs inside the project directory when one is set, so paths
        given relative to the current directory are made absolute.
        """
        api_options: dict[str, Any] = {
            "spec": ",".join(self.for_cypress(Path(spec)) for spec in specs),
            "configFile": (
                self.for_cypress(options.config_file.path)
                if isinstance(options.config_file, ConfigFilePath)
                else False
            ),
            "headed": self.config.headed,
            "quiet": self.config.quiet,
        }
        if options.config_overrides:
            api_options["config"] = dict(options.config_overrides)
        if self.config.env:
            api_options["env"] = dict(self.config.env)
        if self.config.browser:
            api_options["browser"] = self.config.browser
        if self.project_dir:
            api_options["project"] = self.project_dir
        return api_options

    @property
    def project_dir(self) -> str | None:
        """Absolute Cypress project directory, if one is configured."""
        if self.config.project is None:
            return None
        return str(Path(self.config.project).resolve())

    def for_cypress(self, path: Path) -> str:
        """Express a path the way the Cypress process can resolve it."""
        return str(path.resolve()) if self.config.project else str(path)


def parse_outcome(raw: str) -> RunResult:
    """Convert the JSON outcome of ``cypress.run()`` into a run result.

    Raises:
        EngineError: If the outcome is not valid JSON of the expected shape

    """
    try:
        outcome = CypressRunOutcome.model_validate_json(raw)
    except ValidationError as e:
        raise EngineError(f"Unreadable Cypress outcome: {e}") from e

    if outcome.failures is not None:
        return RunFailure(
            cause=outcome.message
            or f"Cypress could not run the tests ({outcome.failures} failure(s))"
        )

    return RunSuccess(
        runs=[
            PerFileRun(spec_name=run.spec.name, stats=numeric_stats(run.stats))
            for run in outcome.runs
        ]
    )


def numeric_stats(stats: Mapping[str, Any]) -> Mapping[str, int | float]:
    """Keep numeric statistics only; timestamps arrive as strings."""
    return {
        name: value
        for name, value in stats.items()
        if isinstance(value, int | float) and not isinstance(value, bool)
    }
