from __future__ import annotations

from loguru import logger

from research_agent.models.events import ProgressReporter, ProgressStep, ResearchProgress
from research_agent.services import logger as log_service


def emit(reporter: ProgressReporter | None, event: ResearchProgress) -> None:
    """Deliver a progress event without letting the reporter break the run."""
    logger.debug(f"PROGRESS: {event.to_dict()}")
    if reporter is None:
        return
    try:
        reporter(event)
    except Exception as e:
        logger.warning(f"Progress reporter failed on step {event.step.value}: {e}")


def initialization(topic: str) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.INITIALIZATION,
        message=f'Starting deep research on "{topic}"...',
        depth=0,
    )


def searching(topic: str, depth: int) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.SEARCHING,
        message=f'Searching for information about "{topic}"...',
        depth=depth,
        current_topic=topic,
    )


def extracting(sources_found: int, depth: int, topic: str) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.EXTRACTING,
        message=f"Found {sources_found} sources. Extracting content...",
        depth=depth,
        current_topic=topic,
        sources_found=sources_found,
    )


def analyzing(depth: int, topic: str) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.ANALYZING,
        message="Analyzing findings and identifying knowledge gaps...",
        depth=depth,
        current_topic=topic,
    )


def synthesizing(depth: int, findings: int) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.SYNTHESIZING,
        message=f"Generating research report from {findings} findings...",
        depth=depth,
    )


def completion(depth: int, reason: str) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.COMPLETION,
        message=f"Research loop finished: {reason}",
        depth=depth,
    )


def error(message: str, depth: int, topic: str | None = None) -> ResearchProgress:
    return ResearchProgress(
        step=ProgressStep.ERROR,
        message=message,
        depth=depth,
        current_topic=topic,
    )


class LoggingProgressReporter:
    """Reporter that writes every event to the research step log."""

    def __init__(self, request_id: str):
        self.request_id = request_id

    def __call__(self, event: ResearchProgress) -> None:
        status = "failed" if event.step is ProgressStep.ERROR else "ok"
        log_service.log_research_step(
            request_id=self.request_id,
            step_type=event.step.value,
            status=status,
            data=event.to_dict(),
        )


class CollectingProgressReporter:
    """Reporter that keeps events in memory."""

    def __init__(self) -> None:
        self.events: list[ResearchProgress] = []

    def __call__(self, event: ResearchProgress) -> None:
        self.events.append(event)

    @property
    def steps(self) -> list[str]:
        return [event.step.value for event in self.events]
