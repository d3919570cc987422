from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from string import Template
from typing import Any


PROMPTS_PACKAGE = "research_agent.prompts"
PROMPTS_FILE = "prompts.json"


@lru_cache(maxsize=1)
def _load_catalog() -> dict[str, Any]:
    raw = resources.files(PROMPTS_PACKAGE).joinpath(PROMPTS_FILE).read_text(encoding="utf-8")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Prompt catalog must be a JSON object.")
    return payload


def _resolve_prompt_entry(key: str) -> str:
    node: Any = _load_catalog()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Prompt key not found: {key}")
        node = node[part]
    if not isinstance(node, str):
        raise TypeError(f"Prompt key must map to a string: {key}")
    return node


def render_prompt(key: str, **values: Any) -> str:
    """Render a catalog prompt, e.g. render_prompt("report.user_prompt", topic=...)."""
    template = Template(_resolve_prompt_entry(key))
    try:
        return template.substitute(**values)
    except KeyError as exc:
        missing = str(exc.args[0])
        raise KeyError(f"Missing template value '{missing}' for prompt '{key}'") from exc


def clear_prompt_cache() -> None:
    _load_catalog.cache_clear()
