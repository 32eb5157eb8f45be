"""Site crawler: seed page plus a bounded set of same-origin pages."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from app.core.exceptions import CrawlError

logger = logging.getLogger(__name__)


USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MAX_REDIRECTS = 5

STRIP_TAGS = ["header", "nav", "footer", "aside", "script", "style", "noscript", "iframe", "svg"]
CONTENT_TAGS = ["h1", "h2", "h3", "p", "li", "blockquote"]
MIN_LINE_CHARS = 10

SKIP_EXTENSIONS = re.compile(
    r"\.(jpg|jpeg|png|gif|webp|pdf|zip|doc|docx|xls|xlsx|mp4|mp3|css|js)$", re.IGNORECASE
)
IMPORTANT_TERMS = (
    "about", "company", "team", "services", "service", "product", "solutions",
    "pricing", "contact", "blog", "why", "how", "what",
)


@dataclass
class ScrapedPage:
    title: str
    url: str
    text: str


@dataclass
class CrawlResult:
    pages: List[ScrapedPage] = field(default_factory=list)
    context: str = ""


def extract_main_text(html: str, max_words: int = 1200) -> Tuple[str, str]:
    """
    Return (text, title) for a page.

    Prefers <main>, falls back to <body>; keeps headings, paragraphs, list
    items and quotes, skipping short and repeated lines.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title = soup.title.get_text(strip=True) if soup.title else ""
    title = title or "Untitled"

    for tag in soup(STRIP_TAGS):
        tag.decompose()

    root = soup.find("main") or soup.body or soup

    lines: List[str] = []
    seen = set()
    for node in root.find_all(CONTENT_TAGS):
        text = node.get_text(" ", strip=True)
        if not text or len(text) < MIN_LINE_CHARS:
            continue
        key = re.sub(r"\s+", " ", text.lower())
        if key in seen:
            continue
        seen.add(key)
        lines.append(text)

    full_text = "\n".join(lines)
    words = full_text.split()
    if len(words) > max_words:
        full_text = " ".join(words[:max_words]) + "..."
    return full_text, title


def _link_score(path: str, href: str, anchor: str) -> int:
    score = 0
    path_l, href_l = path.lower(), href.lower()
    for term in IMPORTANT_TERMS:
        if term in path_l or term in href_l or term in anchor:
            score += 10
    # Shallow pages tend to be the important ones
    score -= len([p for p in path.split("/") if p])
    return score


def find_internal_links(html: str, base_url: str) -> List[str]:
    """Same-origin links ordered by importance, fragments and trailing slashes removed."""
    soup = BeautifulSoup(html or "", "html.parser")
    base = urlparse(base_url)
    base_key = base.scheme + "://" + base.netloc + base.path.rstrip("/")

    scored: List[Tuple[int, int, str]] = []
    seen = {base_key}
    for position, anchor in enumerate(soup.find_all("a", href=True)):
        href = anchor["href"].strip()
        if not href or href.startswith(("mailto:", "tel:", "javascript:")):
            continue
        try:
            absolute = urlparse(urljoin(base_url, href))
        except ValueError:
            continue
        if absolute.scheme not in ("http", "https"):
            continue
        if (absolute.scheme, absolute.netloc) != (base.scheme, base.netloc):
            continue
        if SKIP_EXTENSIONS.search(absolute.path):
            continue

        normalized = absolute.scheme + "://" + absolute.netloc + absolute.path.rstrip("/")
        if absolute.query:
            normalized += "?" + absolute.query
        if normalized in seen:
            continue
        seen.add(normalized)

        text = anchor.get_text(" ", strip=True).lower()
        # position breaks ties so equal scores keep document order
        scored.append((-_link_score(absolute.path, href, text), position, normalized))

    scored.sort()
    return [url for _, _, url in scored]


async def fetch_html(client: httpx.AsyncClient, url: str, timeout_ms: int) -> str:
    """GET a page; the whole request (redirects included) is bounded by timeout_ms."""
    timeout_s = timeout_ms / 1000
    response = await asyncio.wait_for(client.get(url, timeout=timeout_s), timeout=timeout_s)
    response.raise_for_status()
    return response.text


def build_context(pages: List[ScrapedPage], seed_url: str) -> str:
    blocks = []
    for page in pages:
        label = "HOMEPAGE" if page.url == seed_url else "PAGE"
        blocks.append(f"[{label}: {page.title} | {page.url}]\n{page.text}")
    return "\n\n".join(blocks)


async def crawl(
    seed_url: str,
    max_pages: int = 5,
    concurrency: int = 3,
    timeout_ms: int = 8000,
    *,
    max_words: int = 1200,
    client: Optional[httpx.AsyncClient] = None,
) -> CrawlResult:
    """
    Crawl `seed_url` and up to `max_pages - 1` linked same-origin pages.

    Only a seed failure aborts the crawl; other pages are skipped on error.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
        )

    try:
        try:
            seed_html = await fetch_html(client, seed_url, timeout_ms)
        except asyncio.TimeoutError:
            raise CrawlError(f"Failed to fetch {seed_url}: timed out after {timeout_ms}ms")
        except httpx.HTTPError as e:
            raise CrawlError(f"Failed to fetch {seed_url}: {e}") from e

        text, title = extract_main_text(seed_html, max_words=max_words)
        fetched: List[Optional[ScrapedPage]] = [ScrapedPage(title=title, url=seed_url, text=text)]

        links = find_internal_links(seed_html, seed_url)[: max(0, max_pages - 1)]
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def fetch_page(url: str) -> Optional[ScrapedPage]:
            async with semaphore:
                try:
                    html = await fetch_html(client, url, timeout_ms)
                except asyncio.TimeoutError:
                    logger.warning(f"Skipping {url}: timed out after {timeout_ms}ms")
                    return None
                except httpx.HTTPError as e:
                    logger.warning(f"Skipping {url}: {e}")
                    return None
            page_text, page_title = extract_main_text(html, max_words=max_words)
            return ScrapedPage(title=page_title, url=url, text=page_text)

        if links:
            fetched.extend(await asyncio.gather(*(fetch_page(u) for u in links)))
    finally:
        if owns_client:
            await client.aclose()

    pages = [p for p in fetched if p is not None and p.text]
    if not pages:
        raise CrawlError(
            "No content could be extracted from the site. "
            "The site may be JavaScript-rendered or inaccessible."
        )

    logger.info(f"Crawled {len(pages)} page(s) from {seed_url}")
    return CrawlResult(pages=pages, context=build_context(pages, seed_url))
