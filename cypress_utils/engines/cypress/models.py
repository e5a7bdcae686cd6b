"""Pydantic models for the outcome of the Cypress module API."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field


class CypressSpec(BaseModel):
    """Spec file reference within a run."""

    name: str
    relative: str | None = None


class CypressRun(BaseModel):
    """One spec file's run as reported by ``cypress.run()``."""

    spec: CypressSpec
    stats: Mapping[str, Any] = Field(default_factory=dict)


class CypressRunOutcome(BaseModel):
    """Resolved value of ``cypress.run()``.

    ``failures`` is only present when Cypress could not run the tests at all;
    test failures are reported inside each run's stats.
    """

    status: str | None = None
    failures: int | None = None
    message: str | None = None
    runs: Sequence[CypressRun] = Field(default_factory=list)
