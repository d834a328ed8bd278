"""FastAPI routes for reviews, replies, votes, progress and moderation.

Services are resolved from ``app.state`` (populated at startup by
``main.build_components``) through ``Depends`` helpers using the
``Annotated`` pattern.  Authentication is out of scope: the caller's
identity arrives in the ``X-User-Id`` header.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/reviews                       POST    Gate → score → moderate
# /api/v1/reviews/{rid}                 GET     Fetch one review
# /api/v1/reviews/{rid}/replies         POST    Gate → reply points → moderate
# /api/v1/reviews/{rid}/like            POST    Toggle like
# /api/v1/reviews/{rid}/dislike         POST    Toggle dislike
# /api/v1/users/{uid}/progress          GET     Points, level, badges, streak
# /api/v1/moderation/run                POST    Run one moderation batch now
# /api/v1/health                        GET     Health check + provider status
#
# Application errors (gate rejections, duplicates, not found) are raised
# as ReelCriticError subclasses and turned into JSON by
# ErrorHandlingMiddleware; only "service not wired" is an HTTPException.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from reelcritic import __version__
from reelcritic.api.schemas import (
    HealthResponse,
    RunModerationRequest,
    RunModerationResponse,
    SubmitReplyRequest,
    SubmitReplyResponse,
    SubmitReviewRequest,
    SubmitReviewResponse,
    UserProgressResponse,
    VoteResponse,
)
from reelcritic.models.review import Review
from reelcritic.models.submission import ReviewDraft
from reelcritic.pipeline.moderation_job import ModerationJob
from reelcritic.services.review_service import ReviewService
from reelcritic.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers — resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_review_service(request: Request) -> ReviewService:
    """Return the review service from application state, or fail with 503."""
    service = getattr(request.app.state, "review_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Review service not available")
    return service


def _get_moderation_job(request: Request) -> ModerationJob:
    """Return the moderation job from application state, or fail with 503."""
    job = getattr(request.app.state, "moderation_job", None)
    if job is None:
        raise HTTPException(status_code=503, detail="Moderation job not available")
    return job


def _get_user_id(x_user_id: Annotated[str, Header(min_length=1)]) -> str:
    return x_user_id


ReviewServiceDep = Annotated[ReviewService, Depends(_get_review_service)]
ModerationJobDep = Annotated[ModerationJob, Depends(_get_moderation_job)]
UserIdDep = Annotated[str, Depends(_get_user_id)]


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


@router.post(
    "/reviews",
    response_model=SubmitReviewResponse,
    status_code=201,
    summary="Submit a review",
)
async def submit_review(
    body: SubmitReviewRequest,
    user_id: UserIdDep,
    service: ReviewServiceDep,
) -> SubmitReviewResponse:
    """Run the gate, score the review, moderate it and credit the points."""
    result = await service.submit_review(user_id, ReviewDraft(**body.model_dump()))
    return SubmitReviewResponse(
        review=result.review,
        points_awarded=result.points_awarded,
        breakdown=result.award.breakdown,
        feedback=result.award.feedback,
        moderation=result.moderation,
        total_points=result.total_points,
        level=result.level,
        new_badges=result.new_badges,
    )


@router.get("/reviews/{review_id}", response_model=Review, summary="Fetch a review")
async def get_review(review_id: str, service: ReviewServiceDep) -> Review:
    return await service.get_review(review_id)


@router.post(
    "/reviews/{review_id}/replies",
    response_model=SubmitReplyResponse,
    status_code=201,
    summary="Reply to a review",
)
async def submit_reply(
    review_id: str,
    body: SubmitReplyRequest,
    user_id: UserIdDep,
    service: ReviewServiceDep,
) -> SubmitReplyResponse:
    result = await service.submit_reply(user_id, review_id, body.content)
    return SubmitReplyResponse(
        reply=result.reply,
        points_awarded=result.points_awarded,
        moderation=result.moderation,
    )


@router.post("/reviews/{review_id}/like", response_model=VoteResponse, summary="Toggle a like")
async def like_review(review_id: str, user_id: UserIdDep, service: ReviewServiceDep) -> VoteResponse:
    result = await service.vote(user_id, review_id, like=True)
    return VoteResponse(**result.model_dump())


@router.post("/reviews/{review_id}/dislike", response_model=VoteResponse, summary="Toggle a dislike")
async def dislike_review(review_id: str, user_id: UserIdDep, service: ReviewServiceDep) -> VoteResponse:
    result = await service.vote(user_id, review_id, like=False)
    return VoteResponse(**result.model_dump())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get(
    "/users/{user_id}/progress",
    response_model=UserProgressResponse,
    summary="Points, level, badges and streak",
)
async def get_progress(user_id: str, service: ReviewServiceDep) -> UserProgressResponse:
    progress = await service.get_progress(user_id)
    return UserProgressResponse(
        user_id=progress.user_id,
        total_points=progress.points.total,
        available_points=progress.points.available,
        level=progress.level,
        level_name=progress.level_name,
        next_level_points=progress.next_level_points,
        badges=progress.badges,
        current_streak=progress.streak.current,
        longest_streak=progress.streak.longest,
    )


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


@router.post(
    "/moderation/run",
    response_model=RunModerationResponse,
    summary="Run one moderation batch now",
)
async def run_moderation(job: ModerationJobDep, body: RunModerationRequest | None = None) -> RunModerationResponse:
    """Moderate the oldest unmoderated reviews; a no-op while a batch is in flight."""
    limit = body.limit if body is not None else None
    result = await job.run_batch(limit)
    _logger.info("moderation_run_requested", limit=limit, skipped=result.skipped)
    return RunModerationResponse(result=result)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    job = getattr(request.app.state, "moderation_job", None)
    providers["moderation_scheduler"] = bool(job is not None and job.is_scheduled)

    # Scoring and moderation fall back without an LLM, so only storage is critical.
    if providers.get("storage", False):
        status = "healthy" if providers.get("llm", False) else "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
