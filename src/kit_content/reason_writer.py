"""Reason Writer — LLM-generated "reason for inclusion" text per tier record.

The reason is presentation text only: it never influences which listings
are selected. Any provider problem (missing key, API error, empty answer)
degrades to a templated reason.

Usage:
    writer = ReasonWriter()
    reason = writer.write("Manduka PRO Yoga Mat 6mm", "yoga", "Yoga Mat")
"""

from __future__ import annotations

import os

from src.common.config import Settings, get_anthropic_api_key, get_openai_api_key
from src.common.logging import setup_logging

from .models import LLMProvider, ReasonWriterConfig
from .prompts import SYSTEM_PROMPT, build_reason_prompt, fallback_reason

logger = setup_logging(module_name="reason_writer")

_API_KEY_ENV = {
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
}


class ReasonWriter:
    """Writes a short beginner-oriented benefit line for a listing."""

    def __init__(
        self,
        config: ReasonWriterConfig | None = None,
        settings: Settings | None = None,
    ):
        self.config = config or ReasonWriterConfig()
        self.settings = settings or Settings.load()
        self._client = None

        self.enabled = self.config.enabled and bool(
            os.getenv(_API_KEY_ENV[self.config.provider])
        )
        if self.config.enabled and not self.enabled:
            logger.warning(
                "%s not set; reason generation will use a fallback",
                _API_KEY_ENV[self.config.provider],
            )

    def write(self, product_title: str, activity: str, product_type: str) -> str:
        """Return a reason of at most ``max_chars`` characters.

        Args:
            product_title: Listing title
            activity: Activity the kit is for
            product_type: Category label

        Returns:
            LLM reason, or the templated fallback
        """
        fallback = fallback_reason(activity, product_type)
        if not self.enabled:
            return fallback

        try:
            text = self._call_llm(
                SYSTEM_PROMPT, build_reason_prompt(product_title, activity, product_type)
            )
        except Exception as e:
            logger.warning("Reason generation failed for '%s': %s", product_title[:60], e)
            return fallback

        return self.clean(text, self.config.max_chars) or fallback

    @staticmethod
    def clean(text: str, max_chars: int = 150) -> str:
        """Strip surrounding quotes and truncate at a word boundary.

        Truncated text ends in "..." and stays within ``max_chars``.
        """
        reason = (text or "").strip()
        if reason[:1] in ("\"", "'"):
            reason = reason[1:]
        if reason[-1:] in ("\"", "'"):
            reason = reason[:-1]
        reason = reason.strip()

        if len(reason) <= max_chars:
            return reason
        limit = max_chars - 3
        cut = reason.rfind(" ", 0, limit + 1)
        if cut <= 0:
            cut = limit
        return reason[:cut].rstrip() + "..."

    # --- LLM Integration ---

    def _call_llm(self, system_prompt: str, user_prompt: str) -> str:
        """Call the configured LLM provider and return the response text."""
        if self.config.provider == LLMProvider.OPENAI:
            return self._call_openai(system_prompt, user_prompt)
        else:
            return self._call_anthropic(system_prompt, user_prompt)

    @property
    def _temperature(self) -> float:
        if self.config.temperature is not None:
            return self.config.temperature
        return self.settings.llm.temperature

    @property
    def _max_tokens(self) -> int:
        return self.config.max_tokens or self.settings.llm.max_tokens

    def _call_openai(self, system_prompt: str, user_prompt: str) -> str:
        """Call OpenAI chat completions API."""
        import openai

        if self._client is None:
            self._client = openai.OpenAI(api_key=get_openai_api_key())

        model = self.config.model or self.settings.llm.openai_model

        response = self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            n=1,
        )

        return response.choices[0].message.content or ""

    def _call_anthropic(self, system_prompt: str, user_prompt: str) -> str:
        """Call Anthropic Claude API."""
        import anthropic

        if self._client is None:
            self._client = anthropic.Anthropic(api_key=get_anthropic_api_key())

        model = self.config.model or self.settings.llm.anthropic_model

        response = self._client.messages.create(
            model=model,
            max_tokens=self._max_tokens,
            system=system_prompt,
            messages=[
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._temperature,
        )

        return response.content[0].text
