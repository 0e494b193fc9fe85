"""System prompt and message builder for regulatory page summaries."""

from regwatch.db.models import SourceDescriptor
from regwatch.ingestion.extractor import truncate_for_prompt

_COUNTRY_NAMES = {
    "AU": "Australian",
    "NZ": "New Zealand",
}

_SUMMARY_SYSTEM_PROMPT_TEMPLATE = """\
You are a regulatory ingestion agent for a bookkeeping assistant. You read \
unstructured {jurisdiction} regulatory text from an official government page \
and extract what accountants and bookkeepers must know.

<instructions>
1. Produce a concise summary (at most 200 words) in plain English.
2. List 2-5 bullet-ready obligations or rules that accountants must be \
aware of. Never more than 10.
3. Detect the date the rules take effect if the text states one, as an ISO \
date (YYYY-MM-DD). Use null if the date is missing or uncertain.
4. Provide up to 10 citations with descriptive labels and canonical URLs \
when the text gives them.
5. Give the page a short descriptive title.
</instructions>

<output_format>
Respond with a single JSON object and nothing else:
{{
  "title": "string",
  "summary": "string",
  "obligations": ["string", ...],
  "effective_date": "YYYY-MM-DD" or null,
  "citations": [{{"label": "string", "url": "https://..." or null}}, ...]
}}
</output_format>\
"""


def format_summary_system_prompt(country: str) -> str:
    """Build the summarizer system prompt for a jurisdiction."""
    jurisdiction = _COUNTRY_NAMES.get(country, country)
    return _SUMMARY_SYSTEM_PROMPT_TEMPLATE.format(jurisdiction=jurisdiction)


def format_source_message(source: SourceDescriptor, extracted_text: str) -> str:
    """Format source metadata and (truncated) page text for the LLM."""
    return (
        f"Source URL: {source.url}\n"
        f"Country: {source.country}\n"
        f"Category: {source.category}\n"
        f"Section: {source.section}\n"
        f"Subsection: {source.subsection}\n"
        "\n"
        "Content:\n"
        '"""\n'
        f"{truncate_for_prompt(extracted_text)}\n"
        '"""'
    )


def build_summary_messages(
    source: SourceDescriptor,
    extracted_text: str,
) -> list[dict[str, str]]:
    """Build the message list for a structured summary call.

    Returns:
        OpenAI-format messages list (system + user).
    """
    return [
        {"role": "system", "content": format_summary_system_prompt(source.country)},
        {"role": "user", "content": format_source_message(source, extracted_text)},
    ]
