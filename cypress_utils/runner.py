"""Spec runner coordinating engine executions for both commands."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from cypress_utils.engines.base import ExecutionEngine
from cypress_utils.fan_out import run_bounded
from cypress_utils.models.result import RunFailure, RunResult
from cypress_utils.models.settings import RunOptions

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class WorkItem:
    """One scheduled engine execution."""

    specs: tuple[str, ...]
    trial: int | None = None

    @property
    def label(self) -> str:
        """Short description used in log messages."""
        specs = ", ".join(self.specs)
        return specs if self.trial is None else f"trial {self.trial} ({specs})"


def parallel_work_items(specs: Sequence[str]) -> Sequence[WorkItem]:
    """One work item per spec file."""
    return [WorkItem(specs=(spec,)) for spec in dict.fromkeys(specs)]


def stress_work_items(specs: Sequence[str], trial_count: int) -> Sequence[WorkItem]:
    """The whole spec set, queued once per trial."""
    if trial_count < 1:
        raise ValueError(f"Trial count must be at least 1, got {trial_count}")
    batch = tuple(dict.fromkeys(specs))
    return [WorkItem(specs=batch, trial=trial) for trial in range(1, trial_count + 1)]


@dataclass(frozen=True, kw_only=True)
class SpecRunner:
    """Runs work items on an engine with bounded concurrency."""

    engine: ExecutionEngine
    options: RunOptions
    threads: int

    async def run_parallel(self, specs: Sequence[str]) -> Sequence[RunResult]:
        """Run every spec file in its own engine execution."""
        return await self.run_items(parallel_work_items(specs))

    async def stress_test(
        self, specs: Sequence[str], trial_count: int
    ) -> Sequence[RunResult]:
        """Run the spec set ``trial_count`` times."""
        return await self.run_items(stress_work_items(specs, trial_count))

    async def run_items(self, items: Sequence[WorkItem]) -> Sequence[RunResult]:
        """Execute work items, at most ``threads`` at a time.

        Raises:
            FanOutAbortedError: If an execution raised instead of returning

        """
        log.info(
            "Dispatching %d run(s) with up to %d in parallel...",
            len(items),
            self.threads,
        )
        results = await run_bounded(items, self.threads, self._execute)
        log.info("All runs completed")
        return results

    async def _execute(self, item: WorkItem) -> RunResult:
        log.info("Starting run: %s", item.label)
        result = await self.engine.execute(item.specs, self.options)
        if isinstance(result, RunFailure):
            log.warning("Run could not complete: %s: %s", item.label, result.cause)
        else:
            log.info("Run completed: %s", item.label)
        return result
