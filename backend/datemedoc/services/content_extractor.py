"""
DateMeDoc Backend — Content Extractor
=======================================

What:  Pulls readable text from the links people attach to profiles and
       applications: personal websites/blogs (HTML) and Twitter/X accounts.
How:   httpx for HTTP, BeautifulSoup (html.parser) for HTML, Twitter API v2
       with an app bearer token. Every extraction returns an
       ExtractionResult; a failing link never aborts a batch.
Who:   ProfileService (footprint analysis, ad-hoc extraction),
       MatchingService (URL context score), AnalysisWorker.

Supported sources:
    twitter.com / x.com   → Twitter API v2 (bio, metrics, ≤100 recent tweets)
    instagram.com         → unsupported (needs user-granted API access)
    linkedin.com          → unsupported
    anything else         → website scrape
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, ParserRejectedMarkup

from datemedoc.config import settings

logger = logging.getLogger(__name__)

STRIPPED_TAGS = ["script", "style", "nav", "footer", "header"]
CONTENT_SELECTORS = [
    "article",
    "main",
    ".post-content",
    ".entry-content",
    ".content",
    "#content",
    ".blog-post",
]
MAX_BLOG_POSTS = 10
MAX_BLOG_POST_CHARS = 2000

_WHITESPACE = re.compile(r"\s+")


@dataclass
class ExtractionResult:
    success: bool
    source_type: str
    url: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class LinkExtraction:
    """A submitted link together with what was extracted from it."""

    type: str
    url: Optional[str]
    handle: Optional[str]
    result: ExtractionResult


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def _host_is(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    """Raises ValueError when the body is not a JSON object (proxy pages, outages)."""
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError(f"Unexpected response body from {response.url}")
    return body


class ContentExtractor:
    """
    Stateless extractor. `transport` lets tests plug in httpx.MockTransport.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.extraction_timeout,
            follow_redirects=True,
            transport=self._transport,
            **kwargs,
        )

    # ── Websites ──────────────────────────────────────────────────────────

    async def extract_from_website(self, url: str, source_type: str = "website") -> ExtractionResult:
        try:
            async with self._client(
                headers={"User-Agent": settings.extraction_user_agent}
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Website extraction failed for %s: %s", url, e)
            return ExtractionResult(success=False, source_type=source_type, url=url, error=str(e))

        try:
            data = self.parse_html(response.text, url)
        except (ParserRejectedMarkup, ValueError) as e:
            logger.warning("Could not parse HTML from %s: %s", url, e)
            return ExtractionResult(success=False, source_type=source_type, url=url, error=str(e))
        logger.info("Extracted %d chars from %s", data["content_length"], url)
        return ExtractionResult(success=True, source_type=source_type, url=url, data=data)

    @staticmethod
    def parse_html(html: str, url: str) -> Dict[str, Any]:
        """
        Main content is the longest text among the common content selectors,
        falling back to the whole body.
        """
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(STRIPPED_TAGS):
            tag.decompose()

        title = soup.title.get_text(strip=True) if soup.title else ""
        meta = soup.find("meta", attrs={"name": "description"})
        meta_description = meta.get("content", "") if meta else ""

        main_content = ""
        for selector in CONTENT_SELECTORS:
            text = " ".join(el.get_text(" ") for el in soup.select(selector))
            if len(text) > len(main_content):
                main_content = text
        if not main_content.strip():
            root = soup.body or soup
            main_content = root.get_text(" ")
        main_content = _collapse(main_content)[: settings.max_content_length]

        blog_posts = []
        for elem in soup.select("article, .post, .blog-post")[:MAX_BLOG_POSTS]:
            heading = elem.select_one("h1, h2, .post-title, .entry-title")
            post_title = heading.get_text(strip=True) if heading else ""
            post_content = _collapse(elem.get_text(" "))[:MAX_BLOG_POST_CHARS]
            if post_title and post_content:
                blog_posts.append({"title": post_title, "content": post_content})

        return {
            "url": url,
            "title": title,
            "meta_description": meta_description,
            "main_content": main_content,
            "blog_posts": blog_posts,
            "content_length": len(main_content),
            "extracted_at": _now(),
        }

    # ── Twitter / X ───────────────────────────────────────────────────────

    async def extract_from_twitter(self, handle: str) -> ExtractionResult:
        handle = handle.replace("@", "").strip()
        if not settings.twitter_bearer_token:
            return ExtractionResult(
                success=False,
                source_type="twitter",
                data={"handle": handle},
                error="Twitter API not configured",
            )

        headers = {"Authorization": f"Bearer {settings.twitter_bearer_token}"}
        base = settings.twitter_api_base.rstrip("/")
        try:
            async with self._client(headers=headers) as client:
                user_resp = await client.get(
                    f"{base}/users/by/username/{handle}",
                    params={"user.fields": "description,created_at,public_metrics,verified"},
                )
                user_resp.raise_for_status()
                user = _json_object(user_resp).get("data")
                if not isinstance(user, dict) or not user.get("id"):
                    return ExtractionResult(
                        success=False,
                        source_type="twitter",
                        data={"handle": handle},
                        error="Twitter user not found",
                    )

                tweets_resp = await client.get(
                    f"{base}/users/{user['id']}/tweets",
                    params={
                        "max_results": 100,
                        "tweet.fields": "created_at,public_metrics,entities",
                        "exclude": "retweets",
                    },
                )
                tweets_resp.raise_for_status()
                tweets = [
                    t.get("text", "")
                    for t in _json_object(tweets_resp).get("data") or []
                    if isinstance(t, dict)
                ]
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Twitter extraction failed for @%s: %s", handle, e)
            return ExtractionResult(
                success=False, source_type="twitter", data={"handle": handle}, error=str(e)
            )

        return ExtractionResult(
            success=True,
            source_type="twitter",
            url=f"https://twitter.com/{handle}",
            data={
                "handle": handle,
                "user_id": user["id"],
                "name": user.get("name"),
                "username": user.get("username"),
                "bio": user.get("description", ""),
                "verified": user.get("verified", False),
                "metrics": user.get("public_metrics", {}),
                "tweets": tweets,
                "tweet_count": len(tweets),
                "extracted_at": _now(),
            },
        )

    # ── Dispatch ──────────────────────────────────────────────────────────

    async def extract_from_url(self, url: str, link_type: Optional[str] = None) -> ExtractionResult:
        host = _host(url)

        if _host_is(host, "twitter.com") or _host_is(host, "x.com"):
            parts = [p for p in urlparse(url).path.split("/") if p]
            if parts:
                return await self.extract_from_twitter(parts[0])

        if _host_is(host, "instagram.com"):
            return ExtractionResult(
                success=False,
                source_type="instagram",
                url=url,
                error="Instagram extraction requires user to provide API access or manual data",
            )

        if _host_is(host, "linkedin.com"):
            return ExtractionResult(
                success=False,
                source_type="linkedin",
                url=url,
                error="LinkedIn extraction requires user to provide manual data or API access",
            )

        return await self.extract_from_website(url, link_type or "website")

    async def extract_many(self, links: Iterable[Mapping[str, Any]]) -> List[LinkExtraction]:
        """Extracts each link in order; the batch always completes."""
        results = []
        for link in links:
            url = link.get("url")
            handle = link.get("handle")
            link_type = link.get("type") or "website"
            if url:
                result = await self.extract_from_url(url, link_type)
            elif link_type == "twitter" and handle:
                result = await self.extract_from_twitter(handle)
            else:
                result = ExtractionResult(
                    success=False, source_type=link_type, error="Link has no URL"
                )
            results.append(LinkExtraction(type=link_type, url=url, handle=handle, result=result))
        return results

    # ── Aggregation ───────────────────────────────────────────────────────

    @staticmethod
    def aggregate(extractions: Iterable[LinkExtraction]) -> Tuple[str, Dict[str, Any]]:
        """
        Builds one text corpus with a header per section, plus metadata:
        sources, total_length, successful_extractions, failed_extractions.
        """
        parts: List[str] = []
        metadata: Dict[str, Any] = {
            "sources": [],
            "total_length": 0,
            "successful_extractions": 0,
            "failed_extractions": 0,
        }

        for item in extractions:
            result = item.result
            if not result.success:
                metadata["failed_extractions"] += 1
                metadata["sources"].append(
                    {"type": item.type, "url": item.url, "success": False, "error": result.error}
                )
                continue

            metadata["successful_extractions"] += 1
            metadata["sources"].append({"type": item.type, "url": item.url, "success": True})

            data = result.data
            if data.get("main_content"):
                parts.append(f"--- Content from {item.url} ---\n{data['main_content']}")
            if data.get("tweets"):
                parts.append(f"--- Tweets from @{data.get('handle')} ---\n" + "\n\n".join(data["tweets"]))
            if data.get("bio"):
                parts.append(f"--- Bio: {data['bio']}")
            if data.get("blog_posts"):
                posts = "\n".join(f"\n{p['title']}\n{p['content']}" for p in data["blog_posts"])
                parts.append(f"--- Blog Posts ---{posts}")

        corpus = "\n\n".join(parts).strip()
        metadata["total_length"] = len(corpus)
        return corpus, metadata


content_extractor = ContentExtractor()
