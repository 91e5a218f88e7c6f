"""
DateMeDoc Backend — Abstract LLM Service Interface
====================================================

What:  Abstract base class for the AI analyzer used by matching, profile
       analysis and the background worker.
How:   Concrete providers inherit from LLMService and return parsed JSON
       objects (plain dicts). Provider-specific failures are translated into
       LLMServiceError or CircuitBreakerOpenError.
Who:   MatchingService, ProfileService, ApplicationService, AnalysisWorker.

Implementations:
    - GeminiService: Google Gemini in JSON response mode (default)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Union


class LLMService(ABC):
    """
    Contract:
        - Every analysis method returns a dict decoded from the model's JSON
        - Failures raise LLMServiceError / CircuitBreakerOpenError; callers
          never receive placeholder analyses
    """

    @abstractmethod
    async def analyze_profile(
        self,
        corpus: Union[str, Mapping[str, Any]],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build a psychological profile from text written by or about a person.

        Args:
            corpus:   Aggregated extracted content, or a structured profile
                      body (bio, interests, texts) which is serialized first.
            metadata: Extraction metadata; `sources` are listed in the prompt.

        Returns:
            Profile dict with personality_traits, communication_style,
            interests, passions, values, red_flags, green_flags,
            conversation_topics and overall_summary.
        """
        ...

    @abstractmethod
    async def calculate_compatibility(
        self,
        profile1: Mapping[str, Any],
        profile2: Mapping[str, Any],
        preferences: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Compare two profiles.

        Returns:
            Dict with overall_compatibility_score (0-100),
            compatibility_breakdown, green_flags, red_flags, date_ideas,
            recommendation and summary.
        """
        ...

    @abstractmethod
    async def analyze_application_match(
        self,
        doc_preferences: Optional[Mapping[str, Any]],
        owner_profile: Mapping[str, Any],
        answers: Mapping[str, Any],
        applicant_profile: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """
        Judge how an application's answers fit the doc owner's preferences.

        Returns:
            Dict with preference_match_score, answer_quality_score,
            authenticity_score, effort_score, standout_answers,
            concerning_answers, recommendation and summary.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight connectivity test. Returns True if reachable."""
        ...
