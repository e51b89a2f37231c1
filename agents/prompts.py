"""
Prompt Book

Loads system prompts and fixed user-facing replies from prompts/prompts.yaml.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

import yaml

from app.core.config import settings


@dataclass(frozen=True)
class PromptBook:
    chat_system: str
    agent_system: str
    fallback_system: str
    summary_system: str
    summary_request: str
    summary_empty: str
    summary_failed: str
    apology: str
    unsupported_content: str
    cleared: str
    help_text: str
    tools_text: str

    def summary_prompt(self, conversation: str) -> str:
        return self.summary_request.format(conversation=conversation).strip()


def load_prompt_book(path: str) -> PromptBook:
    """Read a prompt book from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    def section(name: str) -> dict:
        return data.get(name) or {}

    return PromptBook(
        chat_system=section("chat").get("system", "").strip(),
        agent_system=section("agent").get("system", "").strip(),
        fallback_system=section("fallback").get("system", "").strip(),
        summary_system=section("summary").get("system", "").strip(),
        summary_request=section("summary").get("request", "{conversation}"),
        summary_empty=section("summary").get("empty", "").strip(),
        summary_failed=section("summary").get("failed", "").strip(),
        apology=section("replies").get("apology", "").strip(),
        unsupported_content=section("replies").get("unsupported_content", "").strip(),
        cleared=section("replies").get("cleared", "").strip(),
        help_text=str(data.get("help", "")).strip(),
        tools_text=str(data.get("tools", "")).strip(),
    )


@lru_cache(maxsize=1)
def get_prompt_book() -> PromptBook:
    """Load the bundled prompt book once."""
    return load_prompt_book(os.path.join(settings.prompts_dir, "prompts.yaml"))
