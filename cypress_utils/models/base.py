"""Base model configuration for settings and engine payloads."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model used for configuration built once at startup."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)
