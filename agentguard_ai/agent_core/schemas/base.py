"""Pydantic base schema utilities for agent core models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all agent core schemas.

    - ``populate_by_name=True``: camelCase aliases and snake_case field names are both accepted.
    - ``extra="forbid"``: unknown fields are rejected instead of silently dropped.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
