"""Extract the labeled sections from generated text."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from app.core.exceptions import ParseError


META_TITLE = re.compile(r"META TITLE:\s*(.+?)[ \t]*(?:\n|$)", re.IGNORECASE)
META_DESCRIPTION = re.compile(r"META DESCRIPTION:\s*(.+?)[ \t]*(?:\n|$)", re.IGNORECASE)
CONTENT = re.compile(r"===CONTENT START===\s*([\s\S]*?)\s*===CONTENT END===")
FAQ = re.compile(r"===FAQ START===\s*([\s\S]*?)\s*===FAQ END===")
SCHEMA = re.compile(r"===SCHEMA START===\s*([\s\S]*?)\s*===SCHEMA END===")
JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


@dataclass
class ParsedSections:
    meta_title: str
    meta_description: str
    content_markdown: str
    faq_raw: str = ""
    schema_json_string: str = ""


def _match(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def _extract_schema(text: str) -> str:
    block = _match(SCHEMA, text)
    if not block:
        return ""

    fenced = JSON_FENCE.search(block)
    json_string = fenced.group(1).strip() if fenced else block
    try:
        json.loads(json_string)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in SCHEMA block: {e}")
    return json_string


def parse_sections(text: str) -> ParsedSections:
    """
    Split generator output into its sections.

    Meta title, meta description and the content body are required; FAQ and
    schema come back as empty strings when the model left them out.
    """
    text = text or ""
    sections = ParsedSections(
        meta_title=_match(META_TITLE, text),
        meta_description=_match(META_DESCRIPTION, text),
        content_markdown=_match(CONTENT, text),
    )

    missing = [
        name
        for name, value in (
            ("META TITLE", sections.meta_title),
            ("META DESCRIPTION", sections.meta_description),
            ("CONTENT", sections.content_markdown),
        )
        if not value
    ]
    if missing:
        raise ParseError(f"Failed to parse generated output: missing {', '.join(missing)}")

    sections.faq_raw = _match(FAQ, text)
    sections.schema_json_string = _extract_schema(text)
    return sections
