import pytest
from mongomock_motor import AsyncMongoMockClient

from app.core.config import Settings
from app.crawler.service import CrawlResult, ScrapedPage
from app.jobs.service import JobStore


def build_output(
    body_words: int = 800,
    *,
    meta_title: bool = True,
    meta_description: bool = True,
    faq: bool = True,
    schema: bool = True,
) -> str:
    """Generator output in the labeled-section template."""
    parts = []
    if meta_title:
        parts.append("META TITLE: Benefits of X for Small Teams")
    if meta_description:
        parts.append("META DESCRIPTION: Learn how X helps small teams ship faster with fewer tools.")
    body = " ".join(["word"] * max(0, body_words - 3))
    parts.append(f"===CONTENT START===\n# Benefits of X\n\n{body}\n===CONTENT END===")
    if faq:
        parts.append("===FAQ START===\nQ: What is X?\nA: A tool for teams.\n===FAQ END===")
    if schema:
        parts.append(
            '===SCHEMA START===\n```json\n{"@context": "https://schema.org", "@type": "Article"}\n```\n===SCHEMA END==='
        )
    return "\n\n".join(parts)


@pytest.fixture
def make_output():
    return build_output


@pytest.fixture
def collection():
    return AsyncMongoMockClient()["seo_content_test"]["jobs"]


@pytest.fixture
def store(collection):
    return JobStore(collection)


@pytest.fixture
def settings():
    return Settings(
        OPENAI_API_KEY="test-key",
        JOB_MAX_RETRIES=3,
        JOB_STUCK_THRESHOLD_MS=600000,
        JOB_RETENTION_MS=86400000,
        SCRAPE_MAX_PAGES=3,
        SCRAPE_CONCURRENCY=2,
        SCRAPE_TIMEOUT_MS=1000,
    )


class FakeCrawler:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    async def __call__(self, url, max_pages, concurrency, timeout_ms, **kwargs):
        self.calls.append((url, max_pages, concurrency, timeout_ms))
        if self.error:
            raise self.error
        page = ScrapedPage(title="Example Home", url=url, text="Example builds X for small teams.")
        return CrawlResult(pages=[page], context=f"[HOMEPAGE: {page.title} | {page.url}]\n{page.text}")


class FakeGenerator:
    """Returns queued outputs in order; an Exception entry is raised instead."""

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = []

    async def generate(self, context, topic, keywords, target_length, additional_notes=None):
        self.calls.append((context, topic, keywords, target_length, additional_notes))
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return output


@pytest.fixture
def fake_crawler():
    return FakeCrawler()


@pytest.fixture
def fake_generator_cls():
    return FakeGenerator


@pytest.fixture
def fake_crawler_cls():
    return FakeCrawler
