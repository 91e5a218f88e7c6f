"""
DateMeDoc Backend — Matching Service
======================================

What:  Combines the local text heuristic with an optional AI "URL context"
       score into one match result.
Who:   ProfileService.match_application and ApplicationService.
How:
    1. text score      scoring.text_match_score(p1, p2)
    2. url score       (only when requested and either side has URLs)
                       extract both sides' URLs → Gemini profile for each
                       → Gemini compatibility → overall_compatibility_score
    3. overall         scoring.combine(text, url, include_url)
    4. recommendation  scoring.recommendation(overall)

Failure policy for step 2:
    Missing content on either side, or a Gemini failure, yields a URL score
    of 0 with the reason recorded in breakdown["url_based"]. The text score
    still stands, so a flaky link never fails the whole match.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from datemedoc.exceptions import CircuitBreakerOpenError, LLMServiceError
from datemedoc.services import scoring
from datemedoc.services.content_extractor import ContentExtractor, content_extractor
from datemedoc.services.gemini_service import gemini_service
from datemedoc.services.llm_base import LLMService
from datemedoc.services.scoring import MatchProfile

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    text_match_score: int
    url_context_score: int
    overall_score: int
    recommendation: str
    breakdown: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text_match_score": self.text_match_score,
            "url_context_score": self.url_context_score,
            "overall_score": self.overall_score,
            "recommendation": self.recommendation,
            "breakdown": self.breakdown,
        }


class MatchingService:
    def __init__(
        self,
        llm: Optional[LLMService] = None,
        extractor: Optional[ContentExtractor] = None,
    ):
        self.llm = llm or gemini_service
        self.extractor = extractor or content_extractor

    async def collect_texts(self, urls: Sequence[str]) -> List[str]:
        """Main content (or bio, for social accounts) of each reachable URL."""
        texts = []
        for url in urls:
            result = await self.extractor.extract_from_url(url)
            if not result.success:
                continue
            content = result.data.get("main_content") or result.data.get("bio") or ""
            if content:
                texts.append(content)
        return texts

    async def url_context_score(
        self, urls1: Sequence[str], urls2: Sequence[str]
    ) -> Dict[str, Any]:
        texts1 = await self.collect_texts(urls1)
        texts2 = await self.collect_texts(urls2)
        if not texts1 or not texts2:
            return {"score": 0, "reason": "Failed to extract content"}

        try:
            profile1 = await self.llm.analyze_profile(
                {"texts": texts1}, {"total_length": sum(len(t) for t in texts1)}
            )
            profile2 = await self.llm.analyze_profile(
                {"texts": texts2}, {"total_length": sum(len(t) for t in texts2)}
            )
            compatibility = await self.llm.calculate_compatibility(profile1, profile2)
        except (LLMServiceError, CircuitBreakerOpenError) as e:
            logger.warning("URL context scoring skipped: %s", e.message)
            return {"score": 0, "reason": e.message}

        score = compatibility.get("overall_compatibility_score") or 0
        try:
            score = int(round(float(score)))
        except (TypeError, ValueError):
            score = 0
        return {"score": max(0, min(100, score)), "details": compatibility}

    async def match_profiles(
        self,
        profile1: MatchProfile,
        profile2: MatchProfile,
        urls1: Sequence[str] = (),
        urls2: Sequence[str] = (),
        include_url_matching: bool = False,
    ) -> MatchResult:
        text_score = scoring.text_match_score(profile1, profile2)
        breakdown: Dict[str, Any] = {
            "text_based": {
                "score": text_score,
                "method": "Interest, values, location, and age matching",
            }
        }

        url_score = 0
        if include_url_matching and (urls1 or urls2):
            url_result = await self.url_context_score(urls1, urls2)
            url_score = url_result["score"]
            breakdown["url_based"] = url_result

        overall = scoring.combine(text_score, url_score, include_url_matching)
        result = MatchResult(
            text_match_score=text_score,
            url_context_score=url_score,
            overall_score=overall,
            recommendation=scoring.recommendation(overall),
            breakdown=breakdown,
        )
        logger.info(
            "Match computed: text=%d url=%d overall=%d (%s)",
            text_score,
            url_score,
            overall,
            result.recommendation,
        )
        return result


matching_service = MatchingService()
