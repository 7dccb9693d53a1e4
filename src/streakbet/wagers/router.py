"""Solo bet and friend challenge endpoints: 8 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.auth.dependencies import get_current_user
from streakbet.database import get_session
from streakbet.db.models import User
from streakbet.deadline import with_deadline
from streakbet.dependencies import get_bet_service, get_challenge_service
from streakbet.wagers.bet_service import BetService
from streakbet.wagers.challenge_service import ChallengeService
from streakbet.wagers.schemas import (
    AcceptChallengeResponse,
    ActiveBetResponse,
    ActiveChallengesResponse,
    BetHistoryResponse,
    BetResponse,
    ChallengeResponse,
    CreateBetRequest,
    CreateBetResponse,
    PendingChallengesResponse,
    SendChallengeRequest,
    SendChallengeResponse,
)

router = APIRouter(prefix="/api/v1/bets", tags=["Wagers"])


# ── Solo bets ──


@router.post("/create", response_model=CreateBetResponse, status_code=201)
async def create_bet(
    body: CreateBetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    bets: BetService = Depends(get_bet_service),
):
    """Stake XP on keeping the login streak alive until ``end_date``."""
    result = await with_deadline(db, bets.create_solo_bet(user.id, body.amount, body.end_date))
    return CreateBetResponse(
        success=True,
        message=result["message"],
        bet=BetResponse.model_validate(result["bet"]),
        new_balance=result["new_balance"],
    )


@router.get("/active", response_model=ActiveBetResponse)
async def active_bet(
    user: User = Depends(get_current_user),
    bets: BetService = Depends(get_bet_service),
):
    bet = await bets.get_active_bet(user.id)
    return ActiveBetResponse(bet=BetResponse.model_validate(bet) if bet else None)


@router.get("/history", response_model=BetHistoryResponse)
async def bet_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    bets: BetService = Depends(get_bet_service),
):
    """Resolved solo bets with win/loss statistics."""
    history = await bets.get_bet_history(user.id, page, limit)
    return BetHistoryResponse(
        bets=[BetResponse.model_validate(b) for b in history["bets"]],
        pagination=history["pagination"],
        stats=history["stats"],
    )


# ── Friend challenges ──


@router.post("/challenge", response_model=SendChallengeResponse, status_code=201)
async def send_challenge(
    body: SendChallengeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    challenges: ChallengeService = Depends(get_challenge_service),
):
    result = await with_deadline(
        db, challenges.send_challenge(user.id, body.friend_id, body.amount, body.end_date)
    )
    return SendChallengeResponse(
        success=True,
        message=result["message"],
        challenge=ChallengeResponse.model_validate(result["challenge"]),
    )


@router.post("/accept/{challenge_id}", response_model=AcceptChallengeResponse)
async def accept_challenge(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    challenges: ChallengeService = Depends(get_challenge_service),
):
    result = await with_deadline(db, challenges.accept_challenge(challenge_id, user.id))
    return AcceptChallengeResponse(
        success=True,
        message=result["message"],
        challenge=ChallengeResponse.model_validate(result["challenge"]),
        new_balance=result["new_balance"],
    )


@router.post("/decline/{challenge_id}")
async def decline_challenge(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    challenges: ChallengeService = Depends(get_challenge_service),
):
    return await with_deadline(db, challenges.decline_challenge(challenge_id, user.id))


@router.get("/challenges/pending", response_model=PendingChallengesResponse)
async def pending_challenges(
    user: User = Depends(get_current_user),
    challenges: ChallengeService = Depends(get_challenge_service),
):
    """Challenges awaiting an answer, split into incoming and outgoing."""
    pending = await challenges.get_pending_challenges(user.id)
    return PendingChallengesResponse(
        incoming=[ChallengeResponse.model_validate(c) for c in pending["incoming"]],
        outgoing=[ChallengeResponse.model_validate(c) for c in pending["outgoing"]],
    )


@router.get("/challenges/active", response_model=ActiveChallengesResponse)
async def active_challenges(
    user: User = Depends(get_current_user),
    challenges: ChallengeService = Depends(get_challenge_service),
):
    active = await challenges.get_active_challenges(user.id)
    return ActiveChallengesResponse(challenges=[ChallengeResponse.model_validate(c) for c in active])
