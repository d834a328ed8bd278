"""Unit tests for ModerationService with real SQLite stores and a mocked model."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from reelcritic.interfaces.review_provider import ReviewQuery
from reelcritic.models.moderation import ConsensusInfo
from reelcritic.models.review import ModerationState
from reelcritic.models.user import Points
from reelcritic.providers.audit.sqlite_audit_provider import SQLiteAuditProvider
from reelcritic.providers.persistence.sqlite_review_provider import SQLiteReviewProvider
from reelcritic.providers.persistence.sqlite_user_provider import SQLiteUserProvider
from reelcritic.services.ai_signals import AISignalProvider
from reelcritic.services.moderation_service import DUPLICATE_WARNING, MODERATOR_ID, ModerationService
from reelcritic.utils.errors import NotFoundError
from tests.conftest import NOW, FakeClock, make_reply, make_review, make_user, moderation_json

SPOILER_TEXT = (
    "The twist at the end where the detective turns out to be the killer recontextualises "
    "every scene before it, and the final shot is devastating."
)


def _service(llm, review_store, user_store, audit_store, clock, sleep=None) -> ModerationService:
    return ModerationService(
        review_store,
        user_store,
        audit_store,
        AISignalProvider(llm),
        clock=clock,
        sleep=sleep or AsyncMock(),
    )


@pytest.fixture
async def stored_user(user_store: SQLiteUserProvider):
    user = make_user(points=Points(total=100, available=100), level=2)
    await user_store.save_user(user)
    return user


@pytest.fixture
def service(
    mock_llm: MagicMock,
    review_store: SQLiteReviewProvider,
    user_store: SQLiteUserProvider,
    audit_store: SQLiteAuditProvider,
    clock: FakeClock,
) -> ModerationService:
    return _service(mock_llm, review_store, user_store, audit_store, clock)


# ─── Review pipeline ──────────────────────────────────────────────────


class TestModerateReview:
    @pytest.mark.asyncio
    async def test_spam_is_removed_with_penalty(
        self,
        service: ModerationService,
        mock_llm: MagicMock,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
        audit_store: SQLiteAuditProvider,
        stored_user,
    ) -> None:
        mock_llm.complete.return_value = moderation_json(isSpam=True, qualityScore=95)
        review = make_review(content="BUY NOW!!! Click here http://spam.example")
        await review_store.save_review(review)

        outcome = await service.moderate_review(review)

        assert outcome.verdict is ModerationState.REMOVED
        assert outcome.actions.points_adjustment == -50
        stored = await review_store.get_review(review.review_id)
        assert stored.is_removed is True
        assert stored.removal_reason == "Spam detected"
        assert stored.moderated_by == MODERATOR_ID
        author = await user_store.get_user("user-1")
        assert author.points.total == 50
        assert author.level == 2
        records = await audit_store.list_records(review_id=review.review_id)
        assert [record.action for record in records] == ["review_removed"]
        assert records[0].points_adjustment == -50

    @pytest.mark.asyncio
    async def test_offensive_after_spam_overwrites_reason(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(isSpam=True, isOffensive=True)
        outcome = await service.moderate_review(make_review(), user=stored_user)
        assert outcome.actions.reason == "Offensive content detected"
        assert outcome.actions.points_adjustment == -80

    @pytest.mark.asyncio
    async def test_untagged_spoiler_is_flagged(
        self,
        service: ModerationService,
        mock_llm: MagicMock,
        review_store: SQLiteReviewProvider,
        stored_user,
    ) -> None:
        mock_llm.complete.return_value = moderation_json(containsSpoilers=True)
        review = make_review(content=SPOILER_TEXT, spoiler=False)
        await review_store.save_review(review)

        outcome = await service.moderate_review(review, user=stored_user)

        assert outcome.verdict is ModerationState.FLAGGED
        assert outcome.actions.points_adjustment == -15
        stored = await review_store.get_review(review.review_id)
        assert stored.is_flagged is True
        assert stored.is_removed is False
        assert stored.flag_reason == "Contains untagged spoilers"

    @pytest.mark.asyncio
    async def test_tagged_spoiler_is_allowed(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(containsSpoilers=True)
        outcome = await service.moderate_review(make_review(content=SPOILER_TEXT, spoiler=True), user=stored_user)
        assert outcome.verdict is ModerationState.ALLOWED
        assert outcome.actions.points_adjustment == 0

    @pytest.mark.asyncio
    async def test_quality_bonuses_stack(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(
            qualityScore=92, isConstructive=True, isInsightful=True
        )
        outcome = await service.moderate_review(make_review(), user=stored_user)
        assert outcome.actions.points_adjustment == 30 + 15 + 20

    @pytest.mark.asyncio
    async def test_removed_review_gets_no_bonuses(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(
            isSpam=True, qualityScore=92, isConstructive=True, isInsightful=True, isLowEffort=True
        )
        outcome = await service.moderate_review(make_review(), user=stored_user)
        assert outcome.actions.points_adjustment == -50

    @pytest.mark.asyncio
    async def test_promotional_outlier(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(
            isPromotional=True, promotionalConfidence="high", isLowEffort=True
        )
        review = make_review(rating=10)
        outcome = await service.moderate_review(
            review, user=stored_user, consensus=ConsensusInfo(average_rating=5.0, total_reviews=30)
        )
        assert outcome.actions.points_adjustment == -25 - 15
        assert outcome.verdict is ModerationState.ALLOWED

    @pytest.mark.asyncio
    async def test_high_confidence_without_consensus_is_not_penalised_as_promotional(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(
            isPromotional=True, promotionalConfidence="high", isLowEffort=True
        )
        outcome = await service.moderate_review(make_review(rating=10), user=stored_user)
        assert outcome.actions.points_adjustment == -15

    @pytest.mark.asyncio
    async def test_medium_promotional_confidence(
        self, service: ModerationService, mock_llm: MagicMock, stored_user
    ) -> None:
        mock_llm.complete.return_value = moderation_json(isPromotional=True, promotionalConfidence="medium")
        outcome = await service.moderate_review(make_review(), user=stored_user)
        assert outcome.actions.points_adjustment == -10

    @pytest.mark.asyncio
    async def test_penalty_never_takes_points_below_zero(
        self,
        service: ModerationService,
        mock_llm: MagicMock,
        user_store: SQLiteUserProvider,
    ) -> None:
        user = make_user(points=Points(total=10, available=10))
        await user_store.save_user(user)
        mock_llm.complete.return_value = moderation_json(isSpam=True)
        await service.moderate_review(make_review(), user=user)
        stored = await user_store.get_user("user-1")
        assert stored.points == Points(total=0, available=0)

    @pytest.mark.asyncio
    async def test_model_outage_still_moderates(
        self,
        failing_llm: MagicMock,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
        audit_store: SQLiteAuditProvider,
        clock: FakeClock,
        stored_user,
    ) -> None:
        service = _service(failing_llm, review_store, user_store, audit_store, clock)
        review = make_review()
        await review_store.save_review(review)

        outcome = await service.moderate_review(review)

        assert outcome.success is True
        assert outcome.analysis.fallback is True
        assert outcome.verdict is ModerationState.ALLOWED
        stored = await review_store.get_review(review.review_id)
        assert stored.moderated_at == NOW

    @pytest.mark.asyncio
    async def test_unknown_author_raises(self, service: ModerationService) -> None:
        with pytest.raises(NotFoundError):
            await service.moderate_review(make_review(author_id="ghost"))


# ─── Duplicate detection ──────────────────────────────────────────────


class TestDuplicateContent:
    @pytest.mark.asyncio
    async def test_near_copy_flags_review_and_marks_author(
        self,
        service: ModerationService,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
        clock: FakeClock,
        stored_user,
    ) -> None:
        earlier = make_review(content=SPOILER_TEXT, media_id="tt1", created_at=clock() - timedelta(days=3))
        copy = make_review(content=SPOILER_TEXT, media_id="tt2")
        await review_store.save_review(earlier)
        await review_store.save_review(copy)

        outcome = await service.moderate_review(copy)

        assert outcome.verdict is ModerationState.FLAGGED
        assert DUPLICATE_WARNING in outcome.actions.warnings
        assert outcome.actions.points_adjustment == -20
        author = await user_store.get_user("user-1")
        assert author.has_duplicate_content is True

    @pytest.mark.asyncio
    async def test_duplicate_mark_is_permanent(
        self,
        service: ModerationService,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
    ) -> None:
        await user_store.save_user(make_user(has_duplicate_content=True))
        review = make_review(content="Completely original words about an underrated animated feature.")
        await review_store.save_review(review)

        outcome = await service.moderate_review(review)

        assert outcome.verdict is ModerationState.ALLOWED
        assert (await user_store.get_user("user-1")).has_duplicate_content is True

    @pytest.mark.asyncio
    async def test_other_authors_are_not_compared(
        self,
        service: ModerationService,
        review_store: SQLiteReviewProvider,
        stored_user,
    ) -> None:
        await review_store.save_review(make_review(content=SPOILER_TEXT, author_id="user-9"))
        outcome = await service.moderate_review(make_review(content=SPOILER_TEXT), user=stored_user)
        assert DUPLICATE_WARNING not in outcome.actions.warnings


# ─── Replies ──────────────────────────────────────────────────────────


class TestModerateReply:
    @pytest.mark.asyncio
    async def test_spam_reply_is_removed_from_parent(
        self,
        service: ModerationService,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
        audit_store: SQLiteAuditProvider,
    ) -> None:
        replier = make_user(user_id="user-2", points=Points(total=50, available=50))
        await user_store.save_user(replier)
        keep = make_reply(reply_id="keep", content="Fair point.")
        spam = make_reply(reply_id="spam", content="Win a free prize at http://scam.example")
        review = make_review(review_id="review-1", replies=[keep, spam])
        await review_store.save_review(review)

        outcome = await service.moderate_reply(spam, review, replier)

        assert outcome.removed is True
        assert outcome.points_adjustment == -20
        stored = await review_store.get_review("review-1")
        assert [reply.reply_id for reply in stored.replies] == ["keep"]
        assert (await user_store.get_user("user-2")).points.total == 30
        records = await audit_store.list_records(review_id="review-1")
        assert records[0].action == "reply_removed"
        assert records[0].reply_id == "spam"

    @pytest.mark.asyncio
    async def test_long_clean_reply_earns_bonus(
        self,
        service: ModerationService,
        user_store: SQLiteUserProvider,
    ) -> None:
        replier = make_user(user_id="user-2")
        reply = make_reply(content="I disagree about the editing. " * 5)
        review = make_review(review_id="review-1", replies=[reply])

        outcome = await service.moderate_reply(reply, review, replier)

        assert outcome.removed is False
        assert outcome.points_adjustment == 5
        assert (await user_store.get_user("user-2")).points.total == 5

    @pytest.mark.asyncio
    async def test_short_clean_reply_writes_no_points(
        self,
        service: ModerationService,
        user_store: SQLiteUserProvider,
    ) -> None:
        reply = make_reply(content="Agreed.")
        outcome = await service.moderate_reply(reply, make_review(review_id="review-1"), make_user(user_id="user-2"))
        assert outcome.points_adjustment == 0
        assert await user_store.get_user("user-2") is None


# ─── Batch ────────────────────────────────────────────────────────────


class TestBatchModerate:
    @pytest.mark.asyncio
    async def test_only_pending_reviews_are_processed_once(
        self,
        mock_llm: MagicMock,
        review_store: SQLiteReviewProvider,
        user_store: SQLiteUserProvider,
        audit_store: SQLiteAuditProvider,
        clock: FakeClock,
        stored_user,
    ) -> None:
        sleep = AsyncMock()
        service = _service(mock_llm, review_store, user_store, audit_store, clock, sleep=sleep)
        await review_store.save_review(make_review(
            content="An early pending review about sound design.", media_id="tt1",
            created_at=NOW - timedelta(hours=3),
        ))
        await review_store.save_review(make_review(
            content="A later pending review discussing production values.", media_id="tt2",
            created_at=NOW - timedelta(hours=2),
        ))
        await review_store.save_review(make_review(
            content="Already looked at.", media_id="tt3", moderated_at=NOW - timedelta(hours=1),
        ))
        await review_store.save_review(make_review(
            content="Removed by hand.", media_id="tt4", is_removed=True,
        ))
        await review_store.save_review(make_review(
            content="Author was deleted.", author_id="ghost", media_id="tt5",
            created_at=NOW - timedelta(hours=1),
        ))

        first = await service.batch_moderate(limit=10, delay_seconds=0.5)
        second = await service.batch_moderate(limit=10, delay_seconds=0.5)

        assert (first.processed, first.failed) == (2, 1)
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)
        assert (second.processed, second.failed) == (0, 0)

    @pytest.mark.asyncio
    async def test_orphaned_reviews_do_not_block_the_queue(
        self,
        service: ModerationService,
        review_store: SQLiteReviewProvider,
        audit_store: SQLiteAuditProvider,
        stored_user,
    ) -> None:
        for index in range(3):
            await review_store.save_review(make_review(
                review_id=f"orphan-{index}", author_id=f"ghost-{index}", media_id=f"tt-orphan-{index}",
                content=f"Orphaned review number {index}.", created_at=NOW - timedelta(hours=5 - index),
            ))
        good = make_review(review_id="good", media_id="tt-good", created_at=NOW - timedelta(hours=1))
        await review_store.save_review(good)

        results = [await service.batch_moderate(limit=2, delay_seconds=0) for _ in range(3)]

        assert [(r.processed, r.failed) for r in results] == [(0, 2), (1, 1), (0, 0)]
        assert (await review_store.get_review("good")).moderated_at is not None
        orphan = await review_store.get_review("orphan-0")
        assert orphan.moderated_at is not None
        assert orphan.is_flagged is True
        assert orphan.flag_reason.startswith("Moderation failed")
        records = await audit_store.list_records(review_id="orphan-0")
        assert [record.action for record in records] == ["moderation_failed"]

    @pytest.mark.asyncio
    async def test_counts_outcomes(
        self,
        service: ModerationService,
        mock_llm: MagicMock,
        review_store: SQLiteReviewProvider,
        stored_user,
    ) -> None:
        mock_llm.complete.side_effect = [
            moderation_json(isSpam=True),
            moderation_json(containsSpoilers=True),
            moderation_json(qualityScore=80),
        ]
        contents = ["Spam one about trailers.", "Spoiler about the ending reveal.", "Balanced critique of acting."]
        for index, content in enumerate(contents):
            await review_store.save_review(make_review(
                content=content, media_id=f"tt{index}", created_at=NOW - timedelta(minutes=10 - index),
            ))

        result = await service.batch_moderate(limit=2)

        assert (result.processed, result.removed, result.flagged) == (2, 1, 1)
        assert result.points_adjusted == 2
        assert await review_store.count_reviews(ReviewQuery(unmoderated_only=True)) == 1
