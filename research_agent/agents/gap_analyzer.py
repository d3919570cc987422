from __future__ import annotations

import json
from typing import Any

from loguru import logger
from pydantic import ValidationError

from research_agent.agents.base import BaseAgent
from research_agent.config import settings
from research_agent.errors import AnalysisError
from research_agent.models.research import Finding, GapAnalysis
from research_agent.services.prompt_store import render_prompt
from research_agent.tools.web_utils import clip_text


class GapAnalyzer(BaseAgent):
    """Summarizes accumulated findings and proposes follow-up research gaps.

    The model is asked for JSON output; anything that does not validate as a
    GapAnalysis raises AnalysisError rather than being patched up.
    """

    name = "gap_analyzer"

    @staticmethod
    def _extract_json_object(raw_text: str) -> dict[str, Any]:
        text = raw_text.strip()
        if text.startswith("```"):
            parts = text.split("```")
            if len(parts) >= 2:
                text = parts[1]
            if text.startswith("json"):
                text = text[4:]
            text = text.strip()
        # Whole body must be a single JSON object.
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise json.JSONDecodeError("not an object", text, 0)
        return parsed

    @classmethod
    def parse(cls, raw_text: str) -> GapAnalysis:
        try:
            payload = cls._extract_json_object(raw_text or "")
            return GapAnalysis.model_validate(payload)
        except json.JSONDecodeError as e:
            raise AnalysisError(f"Analyzer response is not valid JSON: {e.msg}") from e
        except ValidationError as e:
            raise AnalysisError(
                f"Analyzer response has the wrong shape: {e.error_count()} validation error(s)"
            ) from e

    def build_prompt(
        self,
        findings: list[Finding],
        summaries: list[str],
        original_topic: str,
    ) -> str:
        clipped = [
            {"text": clip_text(f.text, settings.analysis_finding_chars), "source": f.source}
            for f in findings
        ]
        return render_prompt(
            "gap_analyzer.user_prompt",
            topic=original_topic,
            findings=json.dumps(clipped, ensure_ascii=False, indent=2),
            summaries=json.dumps(summaries, ensure_ascii=False, indent=2),
        )

    async def analyze(
        self,
        findings: list[Finding],
        summaries: list[str],
        original_topic: str,
    ) -> GapAnalysis:
        completion = await self.complete(
            system=render_prompt("gap_analyzer.system_prompt", today=self.today()),
            prompt=self.build_prompt(findings, summaries, original_topic),
            temperature=settings.analysis_temperature,
            json_mode=True,
        )
        analysis = self.parse(completion.text)
        logger.debug(
            f"Gap analysis: {len(analysis.gaps)} gaps, should_continue={analysis.should_continue}"
        )
        return analysis
