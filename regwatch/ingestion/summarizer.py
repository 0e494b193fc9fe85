"""Structured LLM summaries of regulatory pages.

The summary is enrichment only: any call failure, timeout or schema
violation yields None and the document is stored without metadata.
"""

import asyncio
import logging

from pydantic import ValidationError

from config import load_yaml_config
from config.settings import settings
from regwatch.db.models import RegulatorySummary, SourceDescriptor
from regwatch.llm.gateway import LLMGateway
from regwatch.llm.prompts import build_summary_messages

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: float = load_yaml_config("scraper.yaml")["summarizer"]["timeout_seconds"]


def _strip_code_fence(content: str) -> str:
    """Remove a ```json ... ``` wrapper some models add despite JSON mode."""
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class Summarizer:
    """Turns extracted page text into a validated RegulatorySummary."""

    def __init__(self, llm: LLMGateway | None = None, timeout: float | None = None) -> None:
        self._llm = llm or LLMGateway(model=settings.summary_model)
        self.timeout = timeout if timeout is not None else _DEFAULT_TIMEOUT

    async def _call(self, source: SourceDescriptor, extracted_text: str) -> str | None:
        messages = build_summary_messages(source, extracted_text)
        result = await self._llm.complete(messages, json_mode=True)
        return result.content

    async def summarize(
        self, source: SourceDescriptor, extracted_text: str
    ) -> RegulatorySummary | None:
        """Summarize a page, or return None if the call or validation fails."""
        try:
            content = await asyncio.wait_for(
                self._call(source, extracted_text), timeout=self.timeout
            )
        except TimeoutError:
            logger.warning("Summary timed out after %.0fs for %s", self.timeout, source.url)
            return None
        except Exception:
            logger.exception("Summary generation failed for %s", source.url)
            return None

        if not content:
            logger.warning("Empty summary response for %s", source.url)
            return None

        try:
            return RegulatorySummary.model_validate_json(_strip_code_fence(content))
        except ValidationError as e:
            logger.warning(
                "Summary for %s failed validation (%d errors)", source.url, e.error_count()
            )
            return None
