"""Research Agent - autonomous multi-round deep research

Simple CLI for running a research loop on a topic.
"""

import argparse
import asyncio
import sys

from research_agent.agents.orchestrator import ResearchOrchestrator
from research_agent.config import settings
from research_agent.errors import ResearchAgentError, normalize_error_message
from research_agent.models.events import ProgressStep, ResearchProgress
from research_agent.models.schemas import coerce_max_depth

STEP_MARKERS = {
    ProgressStep.INITIALIZATION: "[*]",
    ProgressStep.SEARCHING: "[~]",
    ProgressStep.EXTRACTING: "  [+]",
    ProgressStep.ANALYZING: "  [?]",
    ProgressStep.SYNTHESIZING: "[+]",
    ProgressStep.COMPLETION: "[*]",
    ProgressStep.ERROR: "  [!]",
}


def print_progress(event: ResearchProgress) -> None:
    marker = STEP_MARKERS.get(event.step, "[-]")
    prefix = f"(depth {event.depth}) " if event.depth else ""
    print(f"{marker} {prefix}{event.message}", flush=True)


async def run_research(topic: str, max_depth: int) -> int:
    """Run research on the given topic and print the report."""
    print(f"Research topic: {topic}")
    print(f"Max depth: {max_depth}")
    print("-" * 50)

    orchestrator = ResearchOrchestrator()
    try:
        result = await asyncio.wait_for(
            orchestrator.run(topic, max_depth, print_progress),
            timeout=settings.research_timeout_seconds,
        )
    except asyncio.TimeoutError:
        print(f"\n[!] Error: research timed out after {settings.research_timeout_seconds:.0f}s")
        return 1
    except (ResearchAgentError, ValueError) as e:
        print(f"\n[!] Error: {normalize_error_message(e)}")
        return 1

    print(f"\n\n[*] Research Complete!")
    print(f"   Findings: {result.total_findings}")
    print(f"   Sources: {len(result.sources)}")
    print(f"   Rounds summarized: {len(result.summaries)}")
    print(f"\n{'='*50}")
    print("REPORT:")
    print(f"{'='*50}")
    print(result.report)

    if result.sources:
        print(f"\n{'='*50}")
        print("SOURCES:")
        for source in result.sources:
            print(f"  - {source.title or source.url}: {source.url}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Research Agent deep research tool")
    parser.add_argument("--topic", "-t", required=True, help="Research topic")
    parser.add_argument(
        "--depth",
        "-d",
        default=None,
        help=f"Maximum research rounds (1-{settings.max_depth_limit}, default {settings.default_max_depth})",
    )
    args = parser.parse_args()

    topic = args.topic.strip()
    if not topic:
        print("[!] Error: Topic is required")
        sys.exit(1)

    sys.exit(asyncio.run(run_research(topic, coerce_max_depth(args.depth))))


if __name__ == "__main__":
    main()
