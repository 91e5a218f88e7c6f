"""
DateMeDoc Backend — Weighted Compatibility Scoring
====================================================

What:  Deterministic, local scoring heuristics: interest overlap, shared
       values, location match, age bonus and lifestyle bonus.
How:   A handful of factor functions shared by three weight profiles:

    text_match_score()  MatchingService text score          (0..100, int)
        interests 40 · values 30 · location 20/10 · age 10/5

    candidate_score()   form "AI select" ranking            (ScoreBreakdown)
        interests 40 · values 30 · location 15/5 · lifestyle 3×5
        · age-in-range 10 · bio > 150 chars 5

    discovery_score()   profile discovery (/api/users/matches)
        interests 40 · values 30 (normalised by the user's own lists)
        · deal-breaker in bio −50 · location 15 · lifestyle 15, clamped 0..100

    recommendation()    score → excellent/good/moderate/low_match
    combine()           text/url weighted overall score

Who:   MatchingService, FormService.ai_select, ProfileService.find_matches.

Inputs are MatchProfile values so the same code scores ORM rows, request
bodies and Gemini profiles alike.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

LIFESTYLE_KEYS = ("exercise_frequency", "drinking", "smoking")

TEXT_WEIGHT_WITH_URL = 0.4
URL_WEIGHT = 0.6


@dataclass
class MatchProfile:
    """The subset of a profile the heuristics look at."""

    interests: Optional[List[str]] = None
    values: Optional[List[str]] = None
    location: Optional[str] = None
    age: Optional[int] = None
    bio: Optional[str] = None
    lifestyle: Optional[Dict[str, Any]] = None
    preferred_age_range: Optional[Dict[str, Any]] = None
    deal_breakers: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MatchProfile":
        """
        Builds a MatchProfile from a request body, Gemini profile or raw
        form submission. `core_values` and `lifestyle_preferences` are
        accepted as aliases.
        """
        age = data.get("age")
        try:
            age = int(age) if age is not None and age != "" else None
        except (TypeError, ValueError):
            age = None
        return cls(
            interests=_as_list(data.get("interests")),
            values=_as_list(data.get("values", data.get("core_values"))),
            location=data.get("location") or None,
            age=age,
            bio=data.get("bio") or None,
            lifestyle=data.get("lifestyle", data.get("lifestyle_preferences")),
            preferred_age_range=data.get("preferred_age_range"),
            deal_breakers=_as_list(data.get("deal_breakers")) or [],
        )

    @classmethod
    def from_model(cls, profile: Any) -> "MatchProfile":
        return cls(
            interests=list(profile.interests or []),
            values=list(profile.values or []),
            location=profile.location,
            age=profile.age,
            bio=profile.bio,
            lifestyle=profile.lifestyle,
            preferred_age_range=profile.preferred_age_range,
            deal_breakers=list(profile.deal_breakers or []),
        )


@dataclass
class Factor:
    name: str
    points: float
    common: Optional[List[str]] = None
    same: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "score": round(self.points, 2)}
        if self.common is not None:
            data["common"] = self.common
        if self.same is not None:
            data["same"] = self.same
        return data


@dataclass
class ScoreBreakdown:
    score: int
    factors: List[Factor] = field(default_factory=list)

    def factors_as_dicts(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self.factors]


def _as_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def overlap(a: Iterable[str], b: Iterable[str]) -> List[str]:
    """Items of `a` also present in `b`, in `a`'s order, without repeats."""
    b_set = set(b)
    seen = set()
    common = []
    for item in a:
        if item in b_set and item not in seen:
            seen.add(item)
            common.append(item)
    return common


def _overlap_ratio(a: Sequence[str], b: Sequence[str]) -> float:
    a_set, b_set = set(a), set(b)
    return len(a_set & b_set) / max(len(a_set), len(b_set), 1)


def _age_in_range(age: Optional[int], age_range: Optional[Mapping[str, Any]]) -> bool:
    if age is None or not age_range:
        return False
    low = age_range.get("min")
    high = age_range.get("max")
    if low is not None and age < low:
        return False
    if high is not None and age > high:
        return False
    return True


def _norm(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def text_match_score(p1: MatchProfile, p2: MatchProfile) -> int:
    """
    Profile-to-profile score out of 100.

    interests  40 × common / max(|a|, |b|, 1)
    values     30 × common / max(|a|, |b|, 1)
    location   20 for equal names, 10 when one contains the other
    age        10 when |Δ| ≤ 5, 5 when |Δ| ≤ 10
    """
    score = 0.0
    score += _overlap_ratio(p1.interests or [], p2.interests or []) * 40
    score += _overlap_ratio(p1.values or [], p2.values or []) * 30

    loc1, loc2 = _norm(p1.location), _norm(p2.location)
    if loc1 and loc2:
        if loc1 == loc2:
            score += 20
        elif loc1 in loc2 or loc2 in loc1:
            score += 10

    if p1.age and p2.age:
        diff = abs(p1.age - p2.age)
        if diff <= 5:
            score += 10
        elif diff <= 10:
            score += 5

    # Maximum attainable is 100, so the sum is already a percentage
    return round(score)


def candidate_score(owner: MatchProfile, applicant: MatchProfile) -> ScoreBreakdown:
    """Ranks one form applicant against the form owner."""
    score = 0.0
    factors: List[Factor] = []

    if owner.interests is not None and applicant.interests is not None:
        common = overlap(applicant.interests, owner.interests)
        points = len(common) / max(len(set(owner.interests)), len(applicant.interests), 1) * 40
        score += points
        factors.append(Factor("Interests", points, common=common))

    if owner.values is not None and applicant.values is not None:
        common = overlap(applicant.values, owner.values)
        points = len(common) / max(len(set(owner.values)), len(applicant.values), 1) * 30
        score += points
        factors.append(Factor("Values", points, common=common))

    if owner.location and applicant.location:
        same = _norm(owner.location) == _norm(applicant.location)
        points = 15 if same else 5
        score += points
        factors.append(Factor("Location", points, same=same))

    if owner.lifestyle and applicant.lifestyle:
        points = 0
        for key in LIFESTYLE_KEYS:
            mine = owner.lifestyle.get(key)
            theirs = applicant.lifestyle.get(key)
            if mine is not None and mine == theirs:
                points += 5
        score += points
        factors.append(Factor("Lifestyle", points))

    if _age_in_range(applicant.age, owner.preferred_age_range):
        score += 10
        factors.append(Factor("Age Match", 10))

    if applicant.bio and len(applicant.bio) > 150:
        score += 5
        factors.append(Factor("Profile Quality", 5))

    return ScoreBreakdown(score=round(score), factors=factors)


def discovery_score(user: MatchProfile, candidate: MatchProfile) -> ScoreBreakdown:
    """Scores a potential match for profile discovery, clamped to 0..100."""
    score = 0.0
    factors: List[Factor] = []

    user_interests = user.interests or []
    common = overlap(user_interests, candidate.interests or [])
    points = len(common) / max(len(user_interests), 1) * 40
    score += points
    factors.append(Factor("Interests", points, common=common))

    user_values = user.values or []
    common = overlap(user_values, candidate.values or [])
    points = len(common) / max(len(user_values), 1) * 30
    score += points
    factors.append(Factor("Values", points, common=common))

    bio = _norm(candidate.bio)
    hits = [d for d in user.deal_breakers if d and d.lower() in bio]
    if hits:
        score -= 50
        factors.append(Factor("Deal Breakers", -50, common=hits))

    if user.location and candidate.location and user.location == candidate.location:
        score += 15
        factors.append(Factor("Location", 15, same=True))

    if user.lifestyle and candidate.lifestyle and user.lifestyle == candidate.lifestyle:
        score += 15
        factors.append(Factor("Lifestyle", 15, same=True))

    return ScoreBreakdown(score=round(max(0.0, min(100.0, score))), factors=factors)


def recommendation(score: float) -> str:
    if score >= 80:
        return "excellent_match"
    if score >= 60:
        return "good_match"
    if score >= 40:
        return "moderate_match"
    return "low_match"


def combine(text_score: float, url_score: float, include_url: bool) -> int:
    """Weighted overall score: 0.4 text + 0.6 url, or text alone."""
    if include_url:
        return round(text_score * TEXT_WEIGHT_WITH_URL + url_score * URL_WEIGHT)
    return round(text_score)
