"""Unit tests for AISignalProvider — parsing and fallbacks, no real model calls."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from reelcritic.models.moderation import ConsensusInfo, PromotionalConfidence
from reelcritic.models.scoring import ModerationContext, ScoreBreakdown
from reelcritic.services.ai_signals import DEFAULT_FEEDBACK, AISignalProvider, fallback_content_analysis
from tests.conftest import make_reply, make_review, make_user, moderation_json


# ─── Quality ──────────────────────────────────────────────────────────


class TestAnalyzeQuality:
    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '```json\n{"coherence": 0.9, "overallQuality": 0.82}\n```'
        signal = await AISignalProvider(mock_llm).analyze_quality(make_review())
        assert signal.score == pytest.approx(0.82)
        assert signal.points == 82
        assert signal.fallback is False

    @pytest.mark.asyncio
    async def test_missing_overall_quality_defaults_to_half(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"coherence": 0.9}'
        signal = await AISignalProvider(mock_llm).analyze_quality(make_review())
        assert signal.score == 0.5
        assert signal.points == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overall", [82, -0.1, 1.5])
    async def test_out_of_range_quality_falls_back(self, mock_llm: MagicMock, overall: float) -> None:
        mock_llm.complete.return_value = json.dumps({"overallQuality": overall})
        signal = await AISignalProvider(mock_llm).analyze_quality(make_review(content="w" * 450))
        assert (signal.score, signal.points, signal.fallback) == (0.7, 70, True)

    @pytest.mark.asyncio
    async def test_unparsable_answer_falls_back(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = "I'd rate this review quite highly!"
        signal = await AISignalProvider(mock_llm).analyze_quality(make_review())
        assert (signal.score, signal.points, signal.fallback) == (0.7, 70, True)

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, mock_llm: MagicMock) -> None:
        async def _slow(**_: object) -> str:
            await asyncio.sleep(1)
            return '{"overallQuality": 0.99}'

        mock_llm.complete = AsyncMock(side_effect=_slow)
        signal = await AISignalProvider(mock_llm, timeout_seconds=0.01).analyze_quality(make_review())
        assert signal.fallback is True
        assert signal.score == 0.7


# ─── Authenticity ─────────────────────────────────────────────────────


class TestCheckAuthenticity:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("alignment", "authentic", "points"),
        [(0.95, True, 50), (0.95, False, 25), (0.7, True, 25), (0.5, True, -20)],
    )
    async def test_points_by_alignment(
        self, mock_llm: MagicMock, alignment: float, authentic: bool, points: int
    ) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"sentimentScore": 7, "alignment": alignment, "authentic": authentic, "reason": "ok"}
        )
        signal = await AISignalProvider(mock_llm).check_authenticity(make_review())
        assert signal.points == points
        assert signal.authentic is authentic

    @pytest.mark.asyncio
    async def test_missing_alignment_falls_back(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"authentic": true}'
        signal = await AISignalProvider(mock_llm).check_authenticity(make_review())
        assert (signal.score, signal.authentic, signal.points, signal.fallback) == (0.8, True, 40, True)

    @pytest.mark.asyncio
    async def test_missing_authentic_flag_falls_back(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"alignment": 0.95}'
        signal = await AISignalProvider(mock_llm).check_authenticity(make_review())
        assert signal.fallback is True
        assert signal.points == 40

    @pytest.mark.asyncio
    async def test_alignment_on_percent_scale_falls_back(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"alignment": 95, "authentic": true}'
        signal = await AISignalProvider(mock_llm).check_authenticity(make_review())
        assert (signal.score, signal.fallback) == (0.8, True)


# ─── Engagement ───────────────────────────────────────────────────────


class TestAnalyzeEngagement:
    @pytest.mark.asyncio
    async def test_no_replies_makes_no_model_call(self, mock_llm: MagicMock) -> None:
        review = make_review(liked_by=["a", "b", "c", "d", "e"], disliked_by=["f"])
        signal = await AISignalProvider(mock_llm).analyze_engagement(review, ModerationContext(global_avg_likes=10))
        mock_llm.complete.assert_not_awaited()
        # sigmoid(0.4) = 0.5987 -> 60
        assert signal.points == 60
        assert signal.meaningful_replies == 0

    @pytest.mark.asyncio
    async def test_counts_meaningful_replies(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = (
            '[{"type": "insightful"}, {"type": "agreement"}, {"type": "spam"}, {"type": "toxic"}]'
        )
        replies = [make_reply(reply_id=f"r{i}") for i in range(4)]
        context = ModerationContext(global_avg_likes=10, recent_replies=replies)
        signal = await AISignalProvider(mock_llm).analyze_engagement(make_review(), context)
        assert signal.meaningful_replies == 2
        assert signal.points == 50 + 10

    @pytest.mark.asyncio
    async def test_classification_failure_assumes_seventy_percent(self, failing_llm: MagicMock) -> None:
        replies = [make_reply(reply_id=f"r{i}") for i in range(5)]
        context = ModerationContext(global_avg_likes=10, recent_replies=replies)
        signal = await AISignalProvider(failing_llm).analyze_engagement(make_review(), context)
        assert signal.meaningful_replies == 3
        assert signal.fallback is True

    @pytest.mark.asyncio
    async def test_only_first_ten_replies_are_sent(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = "[]"
        replies = [make_reply(reply_id=f"r{i}", content=f"reply number {i}") for i in range(15)]
        context = ModerationContext(recent_replies=replies)
        await AISignalProvider(mock_llm).analyze_engagement(make_review(), context)
        prompt = mock_llm.complete.await_args.kwargs["user_prompt"]
        assert "reply number 9" in prompt
        assert "reply number 10" not in prompt


# ─── Content ──────────────────────────────────────────────────────────


class TestAnalyzeContent:
    @pytest.mark.asyncio
    async def test_penalties_and_new_genre_bonus(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = json.dumps({
            "hasSpoilers": True,
            "spoilerSentences": ["He was dead all along."],
            "isDuplicate": True,
            "detectedGenres": ["Drama", "Thriller", "Mystery"],
            "contentQuality": 0.8,
        })
        user = make_user(reviewed_genres=["Drama"])
        signal = await AISignalProvider(mock_llm).analyze_content(make_review(), user)
        assert signal.penalties == -50
        assert signal.new_genres == ["Thriller", "Mystery"]
        assert signal.points == 20 - 50

    @pytest.mark.asyncio
    async def test_tagged_spoilers_are_not_penalised(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"hasSpoilers": true, "isDuplicate": false, "detectedGenres": []}'
        signal = await AISignalProvider(mock_llm).analyze_content(make_review(spoiler=True), make_user())
        assert signal.penalties == 0

    @pytest.mark.asyncio
    async def test_answer_without_flags_falls_back(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"detectedGenres": ["Horror"]}'
        signal = await AISignalProvider(mock_llm).analyze_content(make_review(), make_user())
        assert (signal.points, signal.penalties, signal.fallback) == (0, 0, True)
        assert signal.new_genres == []

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_zero(self, failing_llm: MagicMock) -> None:
        signal = await AISignalProvider(failing_llm).analyze_content(make_review(), make_user())
        assert (signal.points, signal.penalties, signal.fallback) == (0, 0, True)


# ─── Feedback ─────────────────────────────────────────────────────────


class TestGenerateFeedback:
    @pytest.mark.asyncio
    async def test_returns_model_text(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = "  Strong structure; add an example or two.  "
        text = await AISignalProvider(mock_llm).generate_feedback(ScoreBreakdown(), True, make_review())
        assert text == "Strong structure; add an example or two."

    @pytest.mark.asyncio
    async def test_empty_or_failed_answer_uses_default(self, mock_llm: MagicMock, failing_llm: MagicMock) -> None:
        mock_llm.complete.return_value = "   "
        assert await AISignalProvider(mock_llm).generate_feedback(ScoreBreakdown(), True, make_review()) == DEFAULT_FEEDBACK
        assert await AISignalProvider(failing_llm).generate_feedback(ScoreBreakdown(), False, make_review()) == DEFAULT_FEEDBACK


# ─── Moderation analysis ──────────────────────────────────────────────


class TestAnalyzeForModeration:
    @pytest.mark.asyncio
    async def test_parses_all_fields(self, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = "Here you go:\n" + moderation_json(
            isConstructive=True, isPromotional=True, promotionalConfidence="HIGH", qualityScore=140,
        )
        analysis = await AISignalProvider(mock_llm).analyze_for_moderation(
            make_review(), ConsensusInfo(average_rating=6.5, total_reviews=40)
        )
        assert analysis.is_constructive is True
        assert analysis.promotional_confidence is PromotionalConfidence.HIGH
        assert analysis.quality_score == 100.0
        assert analysis.fallback is False
        prompt = mock_llm.complete.await_args.kwargs["user_prompt"]
        assert "6.5/10" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["{}", '{"reasoning": "ok"}', '{"isSpam": false, "isOffensive": false}'])
    async def test_partial_answer_uses_length_fallback(self, mock_llm: MagicMock, answer: str) -> None:
        mock_llm.complete.return_value = answer
        analysis = await AISignalProvider(mock_llm).analyze_for_moderation(make_review(content="z" * 400))
        assert analysis.fallback is True
        assert analysis.is_constructive is True
        assert analysis.is_insightful is True
        assert analysis.quality_score == 80.0

    @pytest.mark.asyncio
    async def test_failure_uses_pattern_fallback(self, failing_llm: MagicMock) -> None:
        review = make_review(content="Visit http://cheap-tickets.example for a free prize " + "x" * 80)
        analysis = await AISignalProvider(failing_llm).analyze_for_moderation(review)
        assert analysis.fallback is True
        assert analysis.is_spam is True
        assert analysis.is_constructive is True
        assert analysis.is_low_effort is False

    def test_fallback_length_heuristics(self) -> None:
        analysis = fallback_content_analysis(make_review(content="z" * 400))
        assert analysis.is_insightful is True
        assert analysis.quality_score == 80.0
        assert analysis.sentiment == "neutral"
        assert fallback_content_analysis(make_review(content="fine")).is_low_effort is True
