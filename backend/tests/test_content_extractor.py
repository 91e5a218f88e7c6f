"""
DateMeDoc Backend — Content Extractor Tests
=============================================

What:  Website parsing, URL dispatch and corpus aggregation.
How:   httpx.MockTransport stands in for the network; no real requests.
"""

import httpx
import pytest
from unittest.mock import patch

from datemedoc.config import settings
from datemedoc.services.content_extractor import (
    ContentExtractor,
    ExtractionResult,
    LinkExtraction,
)

BLOG_HTML = """
<html>
  <head>
    <title>Alex's Corner</title>
    <meta name="description" content="Notes on climbing and bread">
    <script>var tracking = true;</script>
  </head>
  <body>
    <nav>Home | About</nav>
    <article>
      <h2>Sourdough, week three</h2>
      <p>The starter finally   doubled overnight.</p>
    </article>
    <footer>© Alex</footer>
  </body>
</html>
"""


def _transport(routes):
    def handler(request: httpx.Request) -> httpx.Response:
        for prefix, response in routes.items():
            if str(request.url).startswith(prefix):
                return response
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class TestParseHtml:
    def test_extracts_title_meta_and_article(self):
        data = ContentExtractor.parse_html(BLOG_HTML, "https://alex.example.com")

        assert data["title"] == "Alex's Corner"
        assert data["meta_description"] == "Notes on climbing and bread"
        assert "The starter finally doubled overnight." in data["main_content"]
        assert "tracking" not in data["main_content"]
        assert "Home | About" not in data["main_content"]
        assert data["content_length"] == len(data["main_content"])
        assert data["blog_posts"][0]["title"] == "Sourdough, week three"

    def test_falls_back_to_body_text(self):
        data = ContentExtractor.parse_html(
            "<html><body><p>Just a paragraph.</p></body></html>", "https://x.example"
        )
        assert data["main_content"] == "Just a paragraph."
        assert data["blog_posts"] == []


class TestWebsiteExtraction:
    @pytest.mark.asyncio
    async def test_successful_fetch(self):
        extractor = ContentExtractor(
            transport=_transport({"https://alex.example.com": httpx.Response(200, text=BLOG_HTML)})
        )
        result = await extractor.extract_from_url("https://alex.example.com/", "blog")

        assert result.success is True
        assert result.source_type == "blog"
        assert result.data["title"] == "Alex's Corner"

    @pytest.mark.asyncio
    async def test_http_error_is_captured(self):
        extractor = ContentExtractor(transport=_transport({}))
        result = await extractor.extract_from_url("https://gone.example.com/")

        assert result.success is False
        assert result.source_type == "website"
        assert "404" in result.error


class TestDispatch:
    @pytest.mark.asyncio
    async def test_instagram_is_unsupported(self):
        result = await ContentExtractor().extract_from_url("https://www.instagram.com/alex")
        assert result.success is False
        assert result.source_type == "instagram"

    @pytest.mark.asyncio
    async def test_linkedin_is_unsupported(self):
        result = await ContentExtractor().extract_from_url("https://linkedin.com/in/alex")
        assert result.success is False
        assert result.source_type == "linkedin"

    @pytest.mark.asyncio
    async def test_twitter_without_token(self):
        result = await ContentExtractor().extract_from_url("https://x.com/alex")
        assert result.success is False
        assert result.error == "Twitter API not configured"
        assert result.data == {"handle": "alex"}

    @pytest.mark.asyncio
    async def test_twitter_with_token(self):
        routes = {
            "https://api.twitter.com/2/users/by/username/alex": httpx.Response(
                200, json={"data": {"id": "42", "name": "Alex", "username": "alex",
                                    "description": "Climber."}}
            ),
            "https://api.twitter.com/2/users/42/tweets": httpx.Response(
                200, json={"data": [{"text": "Sent my first 7a!"}]}
            ),
        }
        extractor = ContentExtractor(transport=_transport(routes))
        with patch.object(settings, "twitter_bearer_token", "tkn"):
            result = await extractor.extract_from_twitter("@alex")

        assert result.success is True
        assert result.url == "https://twitter.com/alex"
        assert result.data["bio"] == "Climber."
        assert result.data["tweets"] == ["Sent my first 7a!"]
        assert result.data["tweet_count"] == 1

    @pytest.mark.asyncio
    async def test_twitter_html_reply_is_a_failed_result(self):
        maintenance = httpx.Response(200, text="<html>maintenance</html>")
        extractor = ContentExtractor(transport=_transport({
            "https://api.twitter.com/2/": maintenance,
            "https://alex.example.com": httpx.Response(200, text=BLOG_HTML),
        }))
        with patch.object(settings, "twitter_bearer_token", "tkn"):
            results = await extractor.extract_many([
                {"type": "twitter", "url": "https://twitter.com/alex"},
                {"type": "website", "url": "https://alex.example.com"},
            ])

        assert [r.result.success for r in results] == [False, True]
        assert results[0].result.source_type == "twitter"
        assert results[0].result.data == {"handle": "alex"}

    @pytest.mark.asyncio
    async def test_twitter_tweets_not_json(self):
        routes = {
            "https://api.twitter.com/2/users/by/username/alex": httpx.Response(
                200, json={"data": {"id": "42", "username": "alex"}}
            ),
            "https://api.twitter.com/2/users/42/tweets": httpx.Response(200, text="oops"),
        }
        extractor = ContentExtractor(transport=_transport(routes))
        with patch.object(settings, "twitter_bearer_token", "tkn"):
            result = await extractor.extract_from_twitter("alex")

        assert result.success is False

    @pytest.mark.asyncio
    async def test_twitter_unexpected_user_shape(self):
        routes = {
            "https://api.twitter.com/2/users/by/username/alex": httpx.Response(200, json=["alex"]),
        }
        extractor = ContentExtractor(transport=_transport(routes))
        with patch.object(settings, "twitter_bearer_token", "tkn"):
            result = await extractor.extract_from_twitter("alex")

        assert result.success is False

    @pytest.mark.asyncio
    async def test_unparseable_html_is_a_failed_result(self):
        extractor = ContentExtractor(
            transport=_transport({"https://alex.example.com": httpx.Response(200, text="<p>hi</p>")})
        )
        with patch.object(ContentExtractor, "parse_html", side_effect=ValueError("bad markup")):
            result = await extractor.extract_from_url("https://alex.example.com/")

        assert result.success is False
        assert result.error == "bad markup"

    @pytest.mark.asyncio
    async def test_extract_many_handles_missing_url(self):
        extractor = ContentExtractor(
            transport=_transport({"https://alex.example.com": httpx.Response(200, text=BLOG_HTML)})
        )
        results = await extractor.extract_many(
            [{"type": "website", "url": "https://alex.example.com"}, {"type": "spotify"}]
        )

        assert [r.result.success for r in results] == [True, False]
        assert results[1].result.error == "Link has no URL"


class TestAggregate:
    def test_corpus_sections_and_metadata(self):
        extractions = [
            LinkExtraction(
                type="website",
                url="https://alex.example.com",
                handle=None,
                result=ExtractionResult(
                    success=True, source_type="website", data={"main_content": "About me text"}
                ),
            ),
            LinkExtraction(
                type="twitter",
                url="https://twitter.com/alex",
                handle="alex",
                result=ExtractionResult(
                    success=True,
                    source_type="twitter",
                    data={"handle": "alex", "tweets": ["one", "two"], "bio": "Climber."},
                ),
            ),
            LinkExtraction(
                type="instagram",
                url="https://instagram.com/alex",
                handle=None,
                result=ExtractionResult(success=False, source_type="instagram", error="nope"),
            ),
        ]

        corpus, metadata = ContentExtractor.aggregate(extractions)

        assert "--- Content from https://alex.example.com ---\nAbout me text" in corpus
        assert "--- Tweets from @alex ---\none\n\ntwo" in corpus
        assert "--- Bio: Climber." in corpus
        assert metadata["successful_extractions"] == 2
        assert metadata["failed_extractions"] == 1
        assert metadata["total_length"] == len(corpus)
        assert metadata["sources"][2] == {
            "type": "instagram", "url": "https://instagram.com/alex", "success": False, "error": "nope"
        }

    def test_nothing_extracted_gives_empty_corpus(self):
        corpus, metadata = ContentExtractor.aggregate([])
        assert corpus == ""
        assert metadata["total_length"] == 0
