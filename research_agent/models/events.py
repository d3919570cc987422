from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class ProgressStep(str, Enum):
    INITIALIZATION = "initialization"
    SEARCHING = "searching"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    SYNTHESIZING = "synthesizing"
    COMPLETION = "completion"
    ERROR = "error"


@dataclass
class ResearchProgress:
    step: ProgressStep
    message: str
    depth: int
    current_topic: str | None = None
    sources_found: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "step": self.step.value,
            "message": self.message,
            "depth": self.depth,
        }
        if self.current_topic is not None:
            data["currentTopic"] = self.current_topic
        if self.sources_found is not None:
            data["sourcesFound"] = self.sources_found
        return data


ProgressReporter = Callable[[ResearchProgress], None]
