from __future__ import annotations

import json

from research_agent.agents.base import BaseAgent
from research_agent.config import settings
from research_agent.errors import ConfigurationError, ProviderError, SynthesisError
from research_agent.models.research import Finding
from research_agent.services.prompt_store import render_prompt


class ReportSynthesizer(BaseAgent):
    """Writes the final markdown report from every finding and summary."""

    name = "report_synthesizer"

    def build_prompt(self, topic: str, findings: list[Finding], summaries: list[str]) -> str:
        return render_prompt(
            "report.user_prompt",
            topic=topic,
            findings=json.dumps(
                [f.model_dump() for f in findings], ensure_ascii=False, indent=2
            ),
            summaries=json.dumps(summaries, ensure_ascii=False, indent=2),
        )

    async def synthesize(self, topic: str, findings: list[Finding], summaries: list[str]) -> str:
        try:
            completion = await self.complete(
                system=render_prompt("report.system_prompt", today=self.today()),
                prompt=self.build_prompt(topic, findings, summaries),
                temperature=settings.report_temperature,
                max_tokens=settings.report_max_tokens,
            )
        except (ConfigurationError, ProviderError):
            raise
        except Exception as e:
            raise SynthesisError(f"Report generation failed: {e}") from e

        report = completion.text.strip()
        if not report:
            raise SynthesisError("Report generation failed: empty response from Gemini API")
        return report
