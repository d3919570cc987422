from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from research_agent.config import settings
from research_agent.models.research import Source

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_max_depth(value: Any) -> int:
    """Clamp a client supplied depth into [1, max_depth_limit].

    Absent, non-numeric and zero values fall back to the default depth.
    """
    parsed: int | None = None
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        parsed = int(value) if value == value and abs(value) != float("inf") else None
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        parsed = int(match.group(1)) if match else None

    if not parsed:
        parsed = settings.default_max_depth
    return min(max(1, parsed), settings.max_depth_limit)


# --- Requests ---


class ResearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    max_depth: int = Field(default=None, alias="maxDepth", validate_default=True)

    @field_validator("topic", mode="before")
    @classmethod
    def _topic_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("topic must be a string")
        return value.strip()

    @field_validator("max_depth", mode="before")
    @classmethod
    def _clamp_depth(cls, value: Any) -> int:
        return coerce_max_depth(value)


# --- Responses ---


class ResearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report: str
    sources: list[Source]
    summaries: list[str]
    total_findings: int = Field(alias="totalFindings")


class ErrorResponse(BaseModel):
    error: str
