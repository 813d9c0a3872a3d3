"""Data models for the kit content module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass
class ReasonWriterConfig:
    """Configuration for the reason-for-inclusion writer."""
    provider: LLMProvider = LLMProvider.OPENAI
    model: str = ""  # Empty = use default from settings
    temperature: float | None = None  # None = settings.llm.temperature
    max_tokens: int | None = None  # None = settings.llm.max_tokens
    max_chars: int = 150
    enabled: bool = True
