"""Abstract base class for test execution engines."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from cypress_utils.models.result import RunResult
from cypress_utils.models.settings import RunOptions


class EngineError(Exception):
    """Raised when an engine fails in a way that is not a run outcome."""


@dataclass(frozen=True, kw_only=True)
class ExecutionEngine(ABC):
    """Abstract base for test execution engines.

    An engine executes a set of spec files in one invocation. A run the engine
    could not complete is returned as ``RunFailure``; only unexpected errors
    (missing executable, unreadable output) are raised as ``EngineError``.
    """

    @abstractmethod
    async def execute(
        self,
        specs: Sequence[str],
        options: RunOptions,
    ) -> RunResult:
        """Execute the given spec files in a single engine run.

        Args:
            specs: Spec file paths, executed together
            options: Config file and inline overrides for the run

        Returns:
            RunSuccess with one entry per executed spec file, or RunFailure

        Raises:
            EngineError: If the engine could not be invoked at all

        """
