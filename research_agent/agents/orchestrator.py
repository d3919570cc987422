from __future__ import annotations

import time
from typing import Awaitable, Callable

from loguru import logger

from research_agent.agents.gap_analyzer import GapAnalyzer
from research_agent.agents.report_synthesizer import ReportSynthesizer
from research_agent.config import missing_credentials, settings
from research_agent.errors import AnalysisError, ConfigurationError
from research_agent.models.events import ProgressReporter
from research_agent.models.research import (
    ExtractedPage,
    Finding,
    GapAnalysis,
    ResearchResult,
    ResearchState,
    Source,
)
from research_agent.services import progress
from research_agent.services.prompt_store import render_prompt
from research_agent.tools import firecrawl_extract, firecrawl_search

SearchFn = Callable[[str], Awaitable[list[Source]]]
ExtractFn = Callable[[list[str], str], Awaitable[list[ExtractedPage]]]


class ResearchOrchestrator:
    """Drives the bounded search -> extract -> analyze loop, then writes the report.

    Flow per depth:
      1. Pop the next gap from the FIFO queue
      2. Search the web for it
      3. Batch-extract the top results into findings
      4. Ask the gap analyzer for a summary, new gaps and a continue signal
    After the loop the report synthesizer runs exactly once.

    Search, extraction and analysis failures are reported as "error" progress
    events and never abort the run. Only missing credentials and synthesis
    failures propagate.
    """

    def __init__(
        self,
        *,
        search_fn: SearchFn | None = None,
        extract_fn: ExtractFn | None = None,
        analyzer: GapAnalyzer | None = None,
        synthesizer: ReportSynthesizer | None = None,
        model: str | None = None,
    ):
        self._uses_live_providers = None in (search_fn, extract_fn, analyzer, synthesizer)
        self.search_fn: SearchFn = search_fn or firecrawl_search.search
        self.extract_fn: ExtractFn = extract_fn or firecrawl_extract.extract
        self.analyzer = analyzer or GapAnalyzer(model=model)
        self.synthesizer = synthesizer or ReportSynthesizer(model=model)
        self.extract_top_results = max(int(settings.extract_top_results), 1)
        self.fallback_top_results = max(int(settings.fallback_top_results), 1)

    def _check_configuration(self) -> None:
        if not self._uses_live_providers:
            return
        missing = missing_credentials()
        if missing:
            raise ConfigurationError(missing)

    @staticmethod
    def _fallback_findings(results: list[Source], limit: int) -> list[Finding]:
        return [
            Finding(text=result.description.strip(), source=result.url)
            for result in results[:limit]
            if result.description and result.description.strip()
        ]

    @staticmethod
    def _page_findings(pages: list[ExtractedPage]) -> list[Finding]:
        return [
            Finding(text=page.content.strip(), source=page.url)
            for page in pages
            if page.content and page.content.strip()
        ]

    async def _gather_findings(
        self,
        state: ResearchState,
        results: list[Source],
        current_topic: str,
        depth: int,
        reporter: ProgressReporter | None,
    ) -> None:
        top_results = results[: self.extract_top_results]
        urls = [result.url for result in top_results]
        instruction = render_prompt("extractor.instruction", topic=current_topic)

        try:
            pages = await self.extract_fn(urls, instruction)
        except Exception as e:
            fallback = self._fallback_findings(results, self.fallback_top_results)
            logger.warning(
                f"Extraction failed for '{current_topic}', using {len(fallback)} search descriptions: {e}"
            )
            state.findings.extend(fallback)
            progress.emit(
                reporter,
                progress.error(
                    f"Content extraction failed ({e}); using search result descriptions instead.",
                    depth,
                    current_topic,
                ),
            )
            return

        new_findings = self._page_findings(pages)
        state.findings.extend(new_findings)
        logger.info(
            f"Extracted {len(new_findings)} findings from {len(urls)} URLs for '{current_topic}'"
        )

    async def _analyze(
        self,
        state: ResearchState,
        topic: str,
        current_topic: str,
        depth: int,
        reporter: ProgressReporter | None,
    ) -> GapAnalysis | None:
        try:
            return await self.analyzer.analyze(list(state.findings), list(state.summaries), topic)
        except AnalysisError as e:
            logger.warning(f"Gap analysis returned an unusable response: {e}")
            progress.emit(
                reporter,
                progress.error(f"Analysis failed: {e}. Skipping this round.", depth, current_topic),
            )
        except Exception as e:
            logger.exception(f"Gap analysis failed for '{current_topic}'")
            progress.emit(
                reporter,
                progress.error(f"Analysis failed: {e}. Skipping this round.", depth, current_topic),
            )
        return None

    async def run(
        self,
        topic: str,
        max_depth: int,
        progress_reporter: ProgressReporter | None = None,
    ) -> ResearchResult:
        """Run the research loop for `topic` with at most `max_depth` iterations."""
        if not topic or not topic.strip():
            raise ValueError("Topic is required")
        self._check_configuration()

        topic = topic.strip()
        max_depth = min(max(int(max_depth), 1), settings.max_depth_limit)
        reporter = progress_reporter
        state = ResearchState.seeded(topic)
        started = time.monotonic()
        completed = False

        logger.info(f"Starting deep research for '{topic[:100]}' with max depth {max_depth}")
        progress.emit(reporter, progress.initialization(topic))

        for depth in range(max_depth):
            step = depth + 1
            if not state.gaps:
                progress.emit(reporter, progress.completion(step, "no open research gaps remain"))
                completed = True
                break

            current_topic = state.gaps.popleft()
            state.iterations += 1
            progress.emit(reporter, progress.searching(current_topic, step))

            try:
                results = await self.search_fn(current_topic)
            except Exception as e:
                logger.warning(f"Search failed for '{current_topic}': {e}")
                progress.emit(reporter, progress.error(f"Search failed: {e}", step, current_topic))
                continue
            if not results:
                logger.info(f"Search returned no results for '{current_topic}'")
                progress.emit(
                    reporter,
                    progress.error(f'No sources found for "{current_topic}"', step, current_topic),
                )
                continue

            state.sources.extend(results)
            progress.emit(reporter, progress.extracting(len(results), step, current_topic))

            await self._gather_findings(state, results, current_topic, step, reporter)

            progress.emit(reporter, progress.analyzing(step, current_topic))
            analysis = await self._analyze(state, topic, current_topic, step, reporter)
            if analysis is None:
                continue

            state.summaries.append(analysis.summary)
            added = [gap for gap in analysis.gaps if state.enqueue_gap(gap)]
            logger.info(
                f"Depth {step}: queued {len(added)} of {len(analysis.gaps)} proposed gaps "
                f"({len(state.gaps)} pending), should_continue={analysis.should_continue}"
            )

            if not analysis.should_continue:
                progress.emit(reporter, progress.completion(step, "analysis found coverage sufficient"))
                completed = True
                break
            if step == max_depth:
                progress.emit(reporter, progress.completion(step, "maximum research depth reached"))
                completed = True
                break

        if not completed:
            progress.emit(
                reporter, progress.completion(state.iterations, "research rounds exhausted")
            )

        progress.emit(reporter, progress.synthesizing(state.iterations, len(state.findings)))
        report = await self.synthesizer.synthesize(topic, list(state.findings), list(state.summaries))

        runtime_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Research complete! Runtime: {runtime_ms}ms, Iterations: {state.iterations}, "
            f"Findings: {len(state.findings)}, Sources: {len(state.sources)}, "
            f"Pending gaps: {len(state.gaps)}"
        )
        return state.to_result(report)
