"""Reduce raw run results into per-subject statistics."""

from collections.abc import Iterable, Mapping, Sequence

from cypress_utils.models.result import (
    PerFileRun,
    RunResult,
    RunSuccess,
    StatValue,
    is_engine_failure,
)

type SubjectStats = Mapping[str, Mapping[str, StatValue]]

WALL_CLOCK_PREFIX = "wallClock"
SUITES_FIELD = "suites"


def is_summable(stat_name: str) -> bool:
    """Timestamps, wall-clock durations and suite trees are not summed."""
    return stat_name != SUITES_FIELD and not stat_name.startswith(WALL_CLOCK_PREFIX)


def countable_runs(results: Iterable[RunResult]) -> Iterable[PerFileRun]:
    """Flatten the per-file runs of every countable result."""
    for result in results:
        match result:
            case RunSuccess(runs=runs):
                yield from runs


def aggregate_results(results: Sequence[RunResult]) -> SubjectStats:
    """Sum statistics per subject across all countable runs.

    Engine-level failures contribute nothing. Non-summable statistics are left
    out of the output entirely.

    Returns:
        Mapping of subject to statistic name to summed value, with subjects in
        order of first appearance

    """
    totals: dict[str, dict[str, StatValue]] = {}
    for run in countable_runs(results):
        subject_totals = totals.setdefault(run.subject, {})
        for name, value in run.stats.items():
            if is_summable(name):
                subject_totals[name] = subject_totals.get(name, 0) + value
    return totals


def count_failed_samples(results: Sequence[RunResult]) -> int:
    """Count results that failed at engine level."""
    return sum(1 for result in results if is_engine_failure(result))
