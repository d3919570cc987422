from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


class Finding(BaseModel):
    text: str
    source: str


class Source(BaseModel):
    url: str
    title: str = ""
    description: str = ""


class ExtractedPage(BaseModel):
    url: str
    content: str = ""


class GapAnalysis(BaseModel):
    """Structured output of one analysis pass.

    Validation is strict: a string "true" is not a bool and a bare string is
    not a list of gaps.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    summary: str
    gaps: list[str]
    should_continue: bool = Field(alias="shouldContinue")


class ResearchResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    report: str
    sources: list[Source]
    summaries: list[str]
    total_findings: int = Field(alias="totalFindings")


@dataclass
class ResearchState:
    """Accumulated working state for a single research run."""

    findings: list[Finding] = field(default_factory=list)
    summaries: list[str] = field(default_factory=list)
    gaps: deque[str] = field(default_factory=deque)
    sources: list[Source] = field(default_factory=list)
    iterations: int = 0

    @classmethod
    def seeded(cls, topic: str) -> "ResearchState":
        return cls(gaps=deque([topic]))

    def enqueue_gap(self, gap: str) -> bool:
        value = gap.strip() if isinstance(gap, str) else ""
        if not value or value in self.gaps:
            return False
        self.gaps.append(value)
        return True

    def to_result(self, report: str) -> ResearchResult:
        return ResearchResult(
            report=report,
            sources=list(self.sources),
            summaries=list(self.summaries),
            total_findings=len(self.findings),
        )
