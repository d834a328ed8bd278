"""AI signal provider: model-derived review signals with fixed fallbacks.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
#
# Each public method makes ONE independent ``ILLMProvider.complete`` call,
# bounded by ``asyncio.wait_for``, and parses the answer with
# ``reelcritic.utils.json_extract``.  Any failure (provider error,
# timeout, unparsable, ill-typed, out-of-range or incomplete JSON) is logged at WARNING as
# ``ai_signal_fallback`` and replaced by the method's documented fallback
# value, so a model outage degrades scores and never fails a submission.
#
#   analyze_quality         -> QualitySignal       fallback score 0.7 / 70 pts
#   check_authenticity      -> AuthenticitySignal  fallback 0.8 / authentic / 40 pts
#   analyze_engagement      -> EngagementSignal    reply classification falls back
#                                                  to 70% meaningful replies
#   analyze_content         -> ContentSignal       fallback 0 pts / 0 penalties
#   generate_feedback       -> str                 fixed encouragement sentence
#   analyze_for_moderation  -> ContentAnalysis     regex/length heuristics
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import json
import math
from typing import Any

import structlog

from reelcritic.interfaces.llm_provider import ILLMProvider
from reelcritic.models.moderation import ConsensusInfo, ContentAnalysis, PromotionalConfidence
from reelcritic.models.review import Review
from reelcritic.models.scoring import (
    AuthenticitySignal,
    ContentSignal,
    EngagementSignal,
    ModerationContext,
    QualitySignal,
    ScoreBreakdown,
)
from reelcritic.models.user import User
from reelcritic.services.content_patterns import detect_offensive_content, detect_spam_patterns
from reelcritic.services.scoring_engine import round_half_up, sigmoid
from reelcritic.utils.json_extract import extract_json_array, extract_json_object

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_FEEDBACK = (
    "Your review has been analyzed. Keep writing detailed, authentic reviews to earn more points!"
)

_MAX_CLASSIFIED_REPLIES = 10
_MEANINGFUL_REPLY_TYPES = {"insightful", "agreement"}

# Answers missing any of these keys take the fallback path.
_AUTHENTICITY_FIELDS = ("alignment", "authentic")
_CONTENT_FIELDS = ("hasSpoilers", "isDuplicate")
_MODERATION_FIELDS = (
    "isSpam",
    "isOffensive",
    "containsSpoilers",
    "isConstructive",
    "isInsightful",
    "qualityScore",
)

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_JSON_ONLY_SYSTEM = (
    "You analyse movie and TV reviews for a community review platform. "
    "Respond with ONLY the JSON requested, no prose and no markdown."
)

_QUALITY_PROMPT = """\
Analyze this movie/TV review for quality.

Review Text: {content}
Rating Given: {rating}/10

Score each axis from 0 to 1:
1. coherence: grammar, structure, readability
2. emotionalBalance: balanced tone, not overly emotional
3. reasoning: evidence, examples, logical arguments
4. originality: unique insights, not repetitive
5. overallQuality: combined quality score

Return format:
{{"coherence": 0.85, "emotionalBalance": 0.9, "reasoning": 0.75, "originality": 0.8, "overallQuality": 0.82}}"""

_AUTHENTICITY_PROMPT = """\
Analyze whether the sentiment of this review matches its rating.

Review: {content}
User Rating: {rating}/10

Determine:
1. sentimentScore: detected sentiment on a 0-10 scale
2. alignment: how well the sentiment matches the rating (0-1)
3. authentic: is this review authentic? (true/false)
4. reason: brief explanation

Return format:
{{"sentimentScore": 8.5, "alignment": 0.95, "authentic": true, "reason": "Sentiment matches rating well"}}"""

_REPLY_CLASSIFICATION_PROMPT = """\
Classify each reply as one of: insightful, agreement, spam, toxic.
Return ONLY a JSON array with one object per reply, in order.

Replies:
{replies}

Return format:
[{{"type": "insightful"}}, {{"type": "agreement"}}, {{"type": "spam"}}]"""

_CONTENT_PROMPT = """\
Analyze this review for content issues.

Review: {content}
Has Spoiler Tag: {spoiler}

Detect:
1. hasSpoilers: contains plot spoilers? (true/false)
2. spoilerSentences: list of spoiler sentences
3. isDuplicate: seems copied or generic? (true/false)
4. detectedGenres: genres inferred from the text
5. contentQuality: overall content quality (0-1)

Return format:
{{"hasSpoilers": false, "spoilerSentences": [], "isDuplicate": false, "detectedGenres": ["Action", "Sci-Fi"], "contentQuality": 0.85}}"""

_FEEDBACK_PROMPT = """\
Generate brief, encouraging feedback for this review analysis:

Quality Score: {quality}
Authenticity: {authenticity}
Engagement: {engagement} points
Content Issues: {penalties} penalties

Write a 1-2 sentence summary highlighting strengths and areas for improvement.
Be encouraging and specific. Plain text only."""

_MODERATION_SYSTEM = """\
You are a strict, conservative and evidence-based content analysis system
for moderating user reviews. Base decisions ONLY on the review text, the
user rating and the audience consensus provided. Do not assume intent, do
not penalise opinions for differing from the majority, and do not invent
plot details. A rating difference alone is never grounds for a penalty.
Respond with ONLY a JSON object."""

_MODERATION_PROMPT = """\
CONTEXT (for reference only)
Audience average rating: {average}/10
Total number of audience reviews: {total}

REVIEW TO ANALYZE
Title: {title}
Content: {content}
User Rating: {rating}/10
Spoiler tagged: {spoiler}

Return exactly these fields:
{{
  "isSpam": false,
  "isOffensive": false,
  "containsSpoilers": false,
  "isConstructive": true,
  "isInsightful": false,
  "isLowEffort": false,
  "isPromotional": false,
  "promotionalConfidence": "low",
  "qualityScore": 72,
  "sentiment": "positive",
  "reasoning": "one or two sentences"
}}
qualityScore is 0-100. promotionalConfidence is low, medium or high."""


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    raise TypeError(f"expected boolean, got {type(value).__name__}")


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("expected number, got boolean")
    return float(value)


def _as_unit(value: Any) -> float:
    number = _as_float(value)
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"expected a value in [0, 1], got {number}")
    return number


def _require(data: dict[str, Any], keys: tuple[str, ...]) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise KeyError(f"missing fields: {', '.join(missing)}")


def fallback_content_analysis(review: Review) -> ContentAnalysis:
    """Pattern and length heuristics used when the moderation model is unavailable."""
    length = len(review.content)
    return ContentAnalysis(
        is_spam=detect_spam_patterns(review.content),
        is_offensive=detect_offensive_content(review.content),
        contains_spoilers=False,
        is_constructive=length > 100,
        is_insightful=length > 300,
        is_low_effort=length < 50,
        is_promotional=False,
        promotional_confidence=PromotionalConfidence.LOW,
        quality_score=min(100.0, length / 5),
        sentiment="neutral",
        reasoning="Fallback analysis",
        fallback=True,
    )


class AISignalProvider:
    """Model-backed review signals, each with a deterministic fallback.

    Parameters
    ----------
    llm:
        The completion backend.
    timeout_seconds:
        Upper bound for each individual model call.
    """

    def __init__(self, llm: ILLMProvider, timeout_seconds: float = 20.0) -> None:
        self._llm = llm
        self._timeout = timeout_seconds

    async def _ask(self, system_prompt: str, user_prompt: str, max_tokens: int = 500) -> str:
        return await asyncio.wait_for(
            self._llm.complete(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=0.2,
                max_tokens=max_tokens,
            ),
            timeout=self._timeout,
        )

    def _log_fallback(self, signal: str, exc: BaseException, **context: Any) -> None:
        logger.warning(
            "ai_signal_fallback",
            signal=signal,
            provider=self._llm.get_provider_name(),
            error_type=type(exc).__name__,
            error=str(exc)[:200],
            **context,
        )

    # ------------------------------------------------------------------
    # Scoring signals
    # ------------------------------------------------------------------

    async def analyze_quality(self, review: Review) -> QualitySignal:
        prompt = _QUALITY_PROMPT.format(content=json.dumps(review.content), rating=review.rating)
        try:
            data = extract_json_object(await self._ask(_JSON_ONLY_SYSTEM, prompt))
            overall = data.get("overallQuality")
            score = _as_unit(overall) if overall is not None else 0.5
            return QualitySignal(score=score, points=round_half_up(score * 100), details=data)
        except Exception as exc:
            self._log_fallback("quality", exc, review_id=review.review_id)
            return QualitySignal(score=0.7, points=70, fallback=True)

    async def check_authenticity(self, review: Review) -> AuthenticitySignal:
        prompt = _AUTHENTICITY_PROMPT.format(content=json.dumps(review.content), rating=review.rating)
        try:
            data = extract_json_object(await self._ask(_JSON_ONLY_SYSTEM, prompt))
            _require(data, _AUTHENTICITY_FIELDS)
            alignment = _as_unit(data["alignment"])
            authentic = _as_bool(data["authentic"])
            if authentic and alignment > 0.8:
                points = 50
            elif alignment > 0.6:
                points = 25
            else:
                points = -20
            return AuthenticitySignal(
                score=alignment,
                authentic=authentic,
                points=points,
                reason=str(data.get("reason", "")),
            )
        except Exception as exc:
            self._log_fallback("authenticity", exc, review_id=review.review_id)
            return AuthenticitySignal(score=0.8, authentic=True, points=40, fallback=True)

    async def analyze_engagement(self, review: Review, context: ModerationContext) -> EngagementSignal:
        """Sigmoid-normalised net likes plus 5 points per meaningful reply.

        Only the reply classification calls the model; its failure assumes
        70% of the replies were meaningful.
        """
        raw = (review.like_count - review.dislike_count) / max(context.global_avg_likes, 1)
        normalized = sigmoid(raw)
        replies = context.recent_replies
        meaningful = 0
        fallback = False

        if replies:
            reply_texts = "\n---\n".join(reply.content for reply in replies[:_MAX_CLASSIFIED_REPLIES])
            try:
                answer = await self._ask(
                    _JSON_ONLY_SYSTEM, _REPLY_CLASSIFICATION_PROMPT.format(replies=reply_texts)
                )
                classifications = extract_json_array(answer)
                meaningful = sum(
                    1
                    for item in classifications
                    if isinstance(item, dict) and item.get("type") in _MEANINGFUL_REPLY_TYPES
                )
            except Exception as exc:
                self._log_fallback("reply_classification", exc, review_id=review.review_id)
                meaningful = math.floor(len(replies) * 0.7)
                fallback = True

        return EngagementSignal(
            normalized=normalized,
            meaningful_replies=meaningful,
            points=round_half_up(normalized * 100) + meaningful * 5,
            fallback=fallback,
        )

    async def analyze_content(self, review: Review, user: User) -> ContentSignal:
        prompt = _CONTENT_PROMPT.format(
            content=json.dumps(review.content),
            spoiler="true" if review.spoiler else "false",
        )
        try:
            data = extract_json_object(await self._ask(_JSON_ONLY_SYSTEM, prompt))
            _require(data, _CONTENT_FIELDS)
            penalties = 0
            if _as_bool(data["hasSpoilers"]) and not review.spoiler:
                penalties -= 20
            if _as_bool(data["isDuplicate"]):
                penalties -= 30

            detected = data.get("detectedGenres") or []
            if not isinstance(detected, list):
                raise TypeError("detectedGenres is not a list")
            known = set(user.reviewed_genres)
            new_genres = [str(genre) for genre in detected if str(genre) not in known]
            bonus = len(new_genres) * 10

            return ContentSignal(
                points=bonus + penalties,
                penalties=penalties,
                new_genres=new_genres,
                details=data,
            )
        except Exception as exc:
            self._log_fallback("content", exc, review_id=review.review_id)
            return ContentSignal(points=0, penalties=0, fallback=True)

    async def generate_feedback(
        self,
        breakdown: ScoreBreakdown,
        authentic: bool,
        review: Review,
    ) -> str:
        prompt = _FEEDBACK_PROMPT.format(
            quality=breakdown.ai_quality if breakdown.ai_quality is not None else 0.7,
            authenticity="High" if authentic else "Low",
            engagement=breakdown.engagement or 0,
            penalties=breakdown.penalties or 0,
        )
        try:
            text = (await self._ask(
                "You write short, encouraging feedback for film critics.", prompt, max_tokens=150,
            )).strip()
            if not text:
                raise ValueError("empty feedback")
            return text
        except Exception as exc:
            self._log_fallback("feedback", exc, review_id=review.review_id)
            return DEFAULT_FEEDBACK

    # ------------------------------------------------------------------
    # Moderation signal
    # ------------------------------------------------------------------

    async def analyze_for_moderation(
        self,
        review: Review,
        consensus: ConsensusInfo | None = None,
    ) -> ContentAnalysis:
        average = consensus.average_rating if consensus and consensus.average_rating is not None else "unknown"
        total = consensus.total_reviews if consensus else "unknown"
        prompt = _MODERATION_PROMPT.format(
            average=average,
            total=total,
            title=json.dumps(review.title),
            content=json.dumps(review.content),
            rating=review.rating,
            spoiler="yes" if review.spoiler else "no",
        )
        try:
            data = extract_json_object(await self._ask(_MODERATION_SYSTEM, prompt, max_tokens=600))
            _require(data, _MODERATION_FIELDS)
            confidence = str(data.get("promotionalConfidence", "low")).lower()
            return ContentAnalysis(
                is_spam=_as_bool(data["isSpam"]),
                is_offensive=_as_bool(data["isOffensive"]),
                contains_spoilers=_as_bool(data["containsSpoilers"]),
                is_constructive=_as_bool(data["isConstructive"]),
                is_insightful=_as_bool(data["isInsightful"]),
                is_low_effort=_as_bool(data.get("isLowEffort", False)),
                is_promotional=_as_bool(data.get("isPromotional", False)),
                promotional_confidence=PromotionalConfidence(confidence),
                quality_score=max(0.0, min(100.0, _as_float(data["qualityScore"]))),
                sentiment=str(data.get("sentiment", "neutral")),
                reasoning=str(data.get("reasoning", "")),
            )
        except Exception as exc:
            self._log_fallback("moderation", exc, review_id=review.review_id)
            return fallback_content_analysis(review)
