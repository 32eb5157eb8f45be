"""
Custom application exceptions.
"""

from typing import List, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class ForbiddenException(AppException):
    """Forbidden exception."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class InputValidationError(BadRequestException):
    """Malformed job input. The job is never created."""

    def __init__(self, detail: str = "Invalid input", details: Optional[List[str]] = None):
        super().__init__(detail=detail)
        self.details = details or []


# =============================================================================
# Pipeline errors (caught at the job runner boundary, never sent as HTTP errors)
# =============================================================================


class PipelineError(Exception):
    """Base class for failures inside a job stage."""


class CrawlError(PipelineError):
    """Seed page unreachable, or no page yielded usable content."""


class GenerationError(PipelineError):
    """LLM call failed. `category` is one of GENERATION_ERROR_CATEGORIES."""

    def __init__(self, message: str, category: str = "provider"):
        super().__init__(message)
        self.category = category


GENERATION_ERROR_CATEGORIES = ("timeout", "rate_limit", "network", "auth", "provider", "malformed")


class ParseError(PipelineError):
    """A required section is missing from the generated text."""
