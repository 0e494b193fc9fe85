"""Plain-text extraction and token estimation for fetched HTML."""

import html as html_lib
import logging
import math
import re

from bs4 import BeautifulSoup

from config import load_yaml_config

logger = logging.getLogger(__name__)

_config = load_yaml_config("scraper.yaml")
DEFAULT_MAX_TEXT_LENGTH: int = _config["extractor"]["max_text_length"]
DEFAULT_PROMPT_LIMIT: int = _config["summarizer"]["prompt_char_limit"]

_STRIP_TAGS = ["script", "style", "noscript"]
_WHITESPACE_RE = re.compile(r"\s+")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…"


def extract_text(html: str, max_length: int = DEFAULT_MAX_TEXT_LENGTH) -> str:
    """Reduce an HTML page to collapsed plain text.

    Drops script/style/noscript content, decodes HTML entities, collapses
    all whitespace runs to single spaces and truncates to ``max_length``
    characters (marked with a trailing ellipsis).
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
        for element in soup.find_all(_STRIP_TAGS):
            element.decompose()
        root = soup.body or soup
        text = root.get_text(separator=" ")
    except Exception:
        logger.exception("Failed to extract text from HTML")
        return html[:max_length]

    # Entities double-escaped in the source survive the parser once
    decoded = html_lib.unescape(text)
    collapsed = _WHITESPACE_RE.sub(" ", decoded).strip()
    return _truncate(collapsed, max_length)


def count_tokens(text: str) -> int:
    """Estimate token count as ceil(characters / 4)."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def truncate_for_prompt(text: str, limit: int = DEFAULT_PROMPT_LIMIT) -> str:
    """Bound text before sending it to the summarizer."""
    if not text:
        return ""
    return _truncate(text, limit)
