"""Normalization and validation of job submissions."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List
from urllib.parse import urlparse, urlunparse

from pydantic import ValidationError

from app.core.exceptions import InputValidationError
from app.jobs.models import JobCreateRequest, JobInput


MAX_KEYWORDS = 12
MAX_KEYWORD_CHARS = 60


def normalize_url(url: str) -> str:
    """Force https and drop the trailing slash of the path."""
    normalized = (url or "").strip()

    if not re.match(r"^https?://", normalized, re.IGNORECASE):
        normalized = "https://" + normalized
    normalized = re.sub(r"^http://", "https://", normalized, flags=re.IGNORECASE)

    parsed = urlparse(normalized)
    if not parsed.netloc:
        return normalized
    return urlunparse(parsed._replace(path=parsed.path.rstrip("/")))


def split_keywords(raw: str) -> List[str]:
    """Split on commas, trim, drop empties, de-duplicate case-insensitively."""
    if not raw or not raw.strip():
        return []

    seen = set()
    result: List[str] = []
    for part in raw.split(","):
        keyword = part.strip()
        if not keyword:
            continue
        lowered = keyword.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        result.append(keyword)
    return result


def _is_https_url(url: str) -> bool:
    if not url.startswith("https"):
        return False
    parsed = urlparse(url)
    return parsed.scheme == "https" and bool(parsed.netloc) and " " not in url


def format_error_details(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """Render pydantic/FastAPI error dicts as `field: message` lines."""
    details = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        details.append(f"{loc}: {err.get('msg')}")
    return details


def validate_job_request(body: Dict[str, Any]) -> JobInput:
    """
    Validate a raw submission and return the normalized job input.

    Raises InputValidationError; nothing is persisted for rejected input.
    """
    try:
        request = JobCreateRequest.model_validate(body or {})
    except ValidationError as e:
        raise InputValidationError("Invalid input", details=format_error_details(e.errors()))

    url = request.url.strip()
    if not _is_https_url(url):
        raise InputValidationError("Invalid input", details=["url: must be a valid https URL"])

    keywords = split_keywords(request.keywords)
    if not keywords:
        raise InputValidationError("At least one keyword is required")
    if len(keywords) > MAX_KEYWORDS:
        raise InputValidationError(
            f"Maximum {MAX_KEYWORDS} keywords allowed (got {len(keywords)})"
        )
    for keyword in keywords:
        if len(keyword) > MAX_KEYWORD_CHARS:
            raise InputValidationError(
                f'Keyword "{keyword}" must be between 1 and {MAX_KEYWORD_CHARS} characters'
            )

    notes = (request.additional_notes or "").strip() or None

    return JobInput(
        url=normalize_url(url),
        topic=request.topic.strip(),
        keywords=keywords,
        length=request.length,
        additional_notes=notes,
    )
