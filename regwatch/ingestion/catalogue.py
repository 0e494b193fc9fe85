"""Parser for the Markdown regulatory source catalogue.

The catalogue nests sources under headings and describes each one with
labelled bullets::

    ## Australia (AU)
    ### Fair Work (Employment Law)
    #### Minimum Wages
    - **URL:** https://www.fairwork.gov.au/pay-and-wages/minimum-wages
    - **Priority:** high
    - **Category:** award

Parsing is fail-soft: unreadable files yield no sources, and entries that
are missing a URL or carry invalid values are dropped.
"""

import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from config import CONFIG_DIR
from regwatch.db.models import Category, JobFilters, Priority, SourceDescriptor
from regwatch.errors import CatalogueParseError

logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE_PATH = CONFIG_DIR / "regulatory-sources.md"

_COUNTRY_RE = re.compile(r"^## (.*) \((.*)\)")
_FIELD_RE = re.compile(r"^- \*\*(.*?):\*\* (.*)")

# Bullet label -> SourceDescriptor field
_FIELD_KEYS = {
    "Source Type": "source_type",
    "URL": "url",
    "Update Frequency": "update_frequency",
    "Priority": "priority",
    "Category": "category",
}


def _flush(entry: dict[str, Any], sources: list[SourceDescriptor]) -> None:
    """Emit the pending entry if it has a URL and validates."""
    if not entry.get("url"):
        return
    try:
        sources.append(SourceDescriptor(**entry))
    except ValidationError as e:
        logger.debug("Dropping malformed catalogue entry %s: %s", entry.get("url"), e)


def parse_catalogue_text(text: str) -> list[SourceDescriptor]:
    """Parse catalogue Markdown into a flat list of source descriptors."""
    sources: list[SourceDescriptor] = []
    country = ""
    section = ""
    entry: dict[str, Any] = {}

    for raw_line in text.splitlines():
        line = raw_line.strip()

        if line.startswith("#### "):
            _flush(entry, sources)
            entry = {
                "country": country,
                "section": section,
                "subsection": line[5:].strip(),
            }
        elif line.startswith("### "):
            section = line[4:].strip()
        elif line.startswith("## "):
            match = _COUNTRY_RE.match(line)
            if match:
                country = match.group(2).strip()
        elif line.startswith("- **") and entry:
            match = _FIELD_RE.match(line)
            if match:
                field = _FIELD_KEYS.get(match.group(1).strip())
                if field:
                    entry[field] = match.group(2).strip()

    _flush(entry, sources)
    return sources


def _read_catalogue(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogueParseError(f"Cannot read catalogue {path}: {e}") from e


def parse_catalogue(path: Path | None = None) -> list[SourceDescriptor]:
    """Load and parse the catalogue file.

    Returns an empty list if the file cannot be read or parsed; callers
    treat "no sources" as a valid outcome.
    """
    catalogue_path = path or DEFAULT_CATALOGUE_PATH
    try:
        sources = parse_catalogue_text(_read_catalogue(catalogue_path))
    except CatalogueParseError:
        logger.exception("Error parsing regulatory catalogue")
        return []
    logger.debug("Parsed %d sources from %s", len(sources), catalogue_path)
    return sources


def filter_sources(
    sources: list[SourceDescriptor], filters: JobFilters
) -> list[SourceDescriptor]:
    """Keep sources matching every supplied filter dimension."""
    return [s for s in sources if filters.matches(s)]


def get_sources_by_country(country: str, path: Path | None = None) -> list[SourceDescriptor]:
    return filter_sources(parse_catalogue(path), JobFilters(country=country))


def get_sources_by_category(
    category: Category, path: Path | None = None
) -> list[SourceDescriptor]:
    return filter_sources(parse_catalogue(path), JobFilters(category=category))


def get_sources_by_priority(
    priority: Priority, path: Path | None = None
) -> list[SourceDescriptor]:
    return filter_sources(parse_catalogue(path), JobFilters(priority=priority))
