from __future__ import annotations

import time
from datetime import date
from typing import Any

from research_agent.llm_client import Completion, GeminiClientAdapter, client as llm_client, get_model
from research_agent.services import logger as log_service


class BaseAgent:
    """Base agent wrapping a single Gemini completion call.

    Subclasses build their prompts and interpret the returned text; this class
    owns client resolution and call logging.
    """

    name: str = "base"

    def __init__(self, model: str | None = None, client: GeminiClientAdapter | None = None):
        self.model = model or get_model()
        self.client = client

    @staticmethod
    def today() -> str:
        today = date.today()
        return f"{today.isoformat()} ({today.year})"

    async def complete(
        self,
        *,
        system: str,
        prompt: str,
        temperature: float,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> Completion:
        active_client = self.client or llm_client()
        kwargs: dict[str, Any] = {
            "model": self.model,
            "system": system,
            "prompt": prompt,
            "temperature": temperature,
            "json_mode": json_mode,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        t0 = time.monotonic()
        try:
            completion = await active_client.generate(**kwargs)
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="failed",
                error=str(e),
            )
            raise

        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return completion
