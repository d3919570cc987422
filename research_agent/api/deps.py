from __future__ import annotations

from research_agent.agents.orchestrator import ResearchOrchestrator


def get_orchestrator() -> ResearchOrchestrator:
    """Build a fresh orchestrator per request; no research state is shared."""
    return ResearchOrchestrator()
