"""
DateMeDoc Backend — Google Gemini Analyzer
============================================

What:  Concrete LLMService on Google Gemini: psychological profiling,
       pairwise compatibility and application answer analysis.
How:   Prompts ask for a single JSON object and the model runs with
       response_mime_type="application/json". Every call goes through a
       process-wide circuit breaker and a tenacity retry loop.
Who:   Instantiated once at import; shared by every request and the worker.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker rejects calls instantly while Gemini keeps failing
    3. Non-JSON answers raise LLMServiceError (not retried, not a breaker failure)
"""

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Dict, List, Mapping, Optional, Union

import google.generativeai as genai
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
    RetryError,
)

from datemedoc.config import settings
from datemedoc.exceptions import LLMServiceError, CircuitBreakerOpenError
from datemedoc.services.llm_base import LLMService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the Gemini API.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not shared across processes: the API and the worker each hold their own.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True when a call may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Prompts
# ══════════════════════════════════════════════════════════════════════════

PROFILE_PROMPT = """You are an expert psychologist and personality analyst. Analyze the
following content written by or about a person and provide a psychological profile.
Base every judgement on concrete evidence from the text.

Content to analyze:
{content}
{sources}
Respond with one JSON object of this shape:
{{
  "personality_traits": {{"openness": 0-1, "conscientiousness": 0-1, "extraversion": 0-1,
                          "agreeableness": 0-1, "neuroticism": 0-1}},
  "communication_style": {{"primary_style": "analytical|emotional|casual|formal|humorous",
                           "tone": "enthusiastic|reserved|balanced|passionate",
                           "vocabulary_level": "simple|moderate|sophisticated",
                           "authenticity_score": 0-1}},
  "interests": [string], "passions": [string], "values": [string],
  "thinking_style": "analytical|creative|practical|philosophical",
  "humor_type": "sarcastic|witty|dark|wholesome|dry|none",
  "emotional_intelligence": {{"self_awareness": 0-1, "empathy": 0-1, "emotional_expression": 0-1}},
  "social_orientation": "introverted|extroverted|ambiverted",
  "lifestyle_indicators": {{"activity_level": "sedentary|moderate|active",
                            "cultural_engagement": "low|moderate|high",
                            "intellectual_curiosity": "low|moderate|high",
                            "spontaneity": "planned|balanced|spontaneous"}},
  "relationship_indicators": {{"attachment_style": "secure|anxious|avoidant|mixed",
                               "commitment_readiness": "low|moderate|high",
                               "emotional_availability": "low|moderate|high"}},
  "red_flags": [string], "green_flags": [string], "conversation_topics": [string],
  "life_stage": "student|early_career|established|seeking_change",
  "overall_summary": "2-3 sentences"
}}"""

COMPATIBILITY_PROMPT = """You are an expert matchmaker and relationship counselor. Assess the
compatibility between two people from their profiles. Be honest and evidence-based and
consider both similarity and complementarity.

Person 1 profile:
{profile1}

Person 2 profile:
{profile2}
{preferences}
Respond with one JSON object of this shape:
{{
  "overall_compatibility_score": 0-100,
  "confidence_level": 0-1,
  "compatibility_breakdown": {{"personality_match": 0-100, "interests_overlap": 0-100,
      "values_alignment": 0-100, "communication_compatibility": 0-100,
      "lifestyle_compatibility": 0-100, "intellectual_compatibility": 0-100,
      "emotional_compatibility": 0-100, "humor_compatibility": 0-100}},
  "matching_factors": {{"shared_interests": [string], "complementary_traits": [string],
      "similar_values": [string], "compatible_communication": string}},
  "relationship_potential": {{"friendship": 0-100, "romantic": 0-100, "long_term": 0-100}},
  "red_flags": [{{"flag": string, "severity": "low|medium|high", "explanation": string}}],
  "green_flags": [{{"flag": string, "strength": "medium|high", "explanation": string}}],
  "areas_of_growth": [string],
  "date_ideas": [string],
  "conversation_starters": [string],
  "recommendation": "strong_match|good_potential|moderate_match|poor_match",
  "summary": "3-4 sentences"
}}"""

APPLICATION_MATCH_PROMPT = """You are an expert at evaluating dating applications. Analyze how
well an application matches the date-me-doc creator's preferences and questions.

Date-me-doc owner's profile:
{owner_profile}

Date-me-doc owner's preferences:
{preferences}

Applicant's profile:
{applicant_profile}

Applicant's answers:
{answers}

Respond with one JSON object of this shape:
{{
  "preference_match_score": 0-100,
  "answer_quality_score": 0-100,
  "authenticity_score": 0-100,
  "effort_score": 0-100,
  "preference_matches": [{{"preference": string, "matched": boolean, "explanation": string}}],
  "standout_answers": [{{"question": string, "answer": string, "why_standout": string}}],
  "concerning_answers": [{{"question": string, "answer": string, "concern": string}}],
  "overall_impression": "positive|neutral|negative",
  "recommendation": "highly_recommend|recommend|consider|pass",
  "summary": string
}}"""


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def _model_names() -> List[str]:
    return [m.name for m in genai.list_models()]


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(LLMService):
    """
    Google Gemini implementation of the AI analyzer.

    Error Handling Chain:
        API call fails → tenacity retries (retry_max_attempts with backoff)
        → All retries fail → record circuit breaker failure → LLMServiceError
        → Breaker threshold reached → future calls rejected instantly
        → Recovery timeout → one test call allowed (HALF_OPEN)
    """

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(
            settings.gemini_model,
            generation_config={
                "temperature": settings.gemini_temperature,
                "response_mime_type": "application/json",
            },
        )

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    # ── Public analysis API ───────────────────────────────────────────────

    async def analyze_profile(
        self,
        corpus: Union[str, Mapping[str, Any]],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        text = corpus if isinstance(corpus, str) else _dump(corpus)
        sources = ""
        if metadata and metadata.get("sources"):
            listed = ", ".join(
                f"{s.get('type')}: {s.get('url')}" for s in metadata["sources"]
            )
            sources = f"\nSources: {listed}\n"
        prompt = PROFILE_PROMPT.format(
            content=text[: settings.analysis_max_corpus_chars],
            sources=sources,
        )
        return await self._generate_json("profile_analysis", prompt)

    async def calculate_compatibility(
        self,
        profile1: Mapping[str, Any],
        profile2: Mapping[str, Any],
        preferences: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        prefs = ""
        if preferences:
            prefs = f"\nPerson 1's stated preferences:\n{_dump(preferences)}\n"
        prompt = COMPATIBILITY_PROMPT.format(
            profile1=_dump(profile1),
            profile2=_dump(profile2),
            preferences=prefs,
        )
        return await self._generate_json("compatibility", prompt)

    async def analyze_application_match(
        self,
        doc_preferences: Optional[Mapping[str, Any]],
        owner_profile: Mapping[str, Any],
        answers: Mapping[str, Any],
        applicant_profile: Mapping[str, Any],
    ) -> Dict[str, Any]:
        prompt = APPLICATION_MATCH_PROMPT.format(
            owner_profile=_dump(owner_profile),
            preferences=_dump(doc_preferences or {}),
            applicant_profile=_dump(applicant_profile),
            answers=_dump(answers),
        )
        return await self._generate_json("application_match", prompt)

    # ── Call plumbing ─────────────────────────────────────────────────────

    async def _generate_json(self, operation: str, prompt: str) -> Dict[str, Any]:
        """
        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Call Gemini with retry logic
            3. Record success/failure in circuit breaker
            4. Decode the JSON object from the response text

        Raises:
            CircuitBreakerOpenError: Circuit is open
            LLMServiceError: Gemini failed after retries or returned non-JSON
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini %s (%d prompt chars)", request_id, operation, len(prompt))

        try:
            raw = await self._call_gemini_with_retry(prompt, request_id)
            self.circuit_breaker.record_success()
        except CircuitBreakerOpenError:
            raise
        except RetryError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] All Gemini retries exhausted: %s",
                request_id,
                str(e.last_attempt.exception()) if e.last_attempt else "Unknown error",
            )
            raise LLMServiceError(
                message="AI analysis failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini %s failed: %s",
                request_id,
                operation,
                str(e),
                exc_info=True,
            )
            raise LLMServiceError(
                message="An unexpected error occurred during AI analysis.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        return self._decode(raw, operation, request_id)

    @staticmethod
    def _decode(raw: str, operation: str, request_id: str) -> Dict[str, Any]:
        text = raw.strip()
        if text.startswith("```"):
            # Fenced output: drop the opening ```json line and the closing fence
            text = text.split("\n", 1)[1] if "\n" in text else ""
            text = text.rsplit("```", 1)[0]
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("[%s] Gemini %s returned invalid JSON: %s", request_id, operation, e)
            raise LLMServiceError(
                message="AI analysis returned an unreadable response.",
                context={"request_id": request_id, "operation": operation},
            )
        if not isinstance(data, dict):
            raise LLMServiceError(
                message="AI analysis returned an unexpected response shape.",
                context={"request_id": request_id, "operation": operation},
            )
        return data

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, prompt: str, request_id: str) -> str:
        """
        The actual Gemini call, kept separate so tenacity retries only the
        network round trip and never the breaker check.
        """
        start_time = time.time()

        try:
            response = await self.model.generate_content_async(
                prompt,
                request_options={"timeout": settings.gemini_timeout},
            )
            duration_ms = (time.time() - start_time) * 1000
            text = response.text or ""
            logger.info(
                "[%s] Gemini call completed in %.0fms, %d response chars",
                request_id,
                duration_ms,
                len(text),
            )
            return text

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

    async def health_check(self) -> bool:
        """
        Lists available models (no token cost) to verify key and connectivity.
        """
        try:
            # list_models pages over HTTP synchronously
            model_names = await asyncio.to_thread(_model_names)
            target = f"models/{settings.gemini_model}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker, which must be shared across requests
gemini_service = GeminiService()
