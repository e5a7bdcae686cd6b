"""Configuration for the Cypress engine."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field


class CypressEngineConfig(BaseModel):
    """Configuration for the Cypress engine."""

    node_command: Sequence[str] = ("node",)
    project: str | None = None
    browser: str | None = None
    headed: bool = False
    quiet: bool = True
    env: Mapping[str, Any] = Field(default_factory=dict)
    # Cypress output of parallel runs interleaves, so it is hidden by default
    show_output: bool = False
