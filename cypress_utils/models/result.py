"""Models for engine run outcomes."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import PurePath

type StatValue = int | float


def subject_for(spec_name: str) -> str:
    """Derive the subject of a spec file: its base name up to the first dot.

    >>> subject_for("cypress/integration/login.spec.js")
    'login'
    """
    return PurePath(spec_name).name.split(".", 1)[0]


@dataclass(frozen=True, kw_only=True)
class PerFileRun:
    """Statistics of one spec file within a completed engine run."""

    spec_name: str
    stats: Mapping[str, StatValue] = field(default_factory=dict)

    @property
    def subject(self) -> str:
        """Subject the statistics are attributed to."""
        return subject_for(self.spec_name)


@dataclass(frozen=True, kw_only=True)
class RunSuccess:
    """The engine completed a run; individual tests may still have failed."""

    runs: Sequence[PerFileRun]


@dataclass(frozen=True, kw_only=True)
class RunFailure:
    """The engine could not complete a run at all."""

    cause: str


type RunResult = RunSuccess | RunFailure


def is_engine_failure(result: RunResult) -> bool:
    """Return True when a result is not a countable sample."""
    return isinstance(result, RunFailure)
