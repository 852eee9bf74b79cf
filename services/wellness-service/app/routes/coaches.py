"""
Coach Routes
Coach directory, ratings and the coach dashboard
"""

from fastapi import APIRouter, HTTPException, status
from typing import List
import logging

from app.models.coach import CoachResponse, RatingRequest
from app.services.coach_service import AlreadyRated, CoachNotFound
from app.utils.dependencies import CoachServiceDep, CoachSession, CurrentSession

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard/me", response_model=CoachResponse)
async def coach_dashboard(session: CoachSession, coaches: CoachServiceDep):
    """Coach record linked to the signed-in coach"""
    if not session.coach_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No coach record is linked to this account"
        )

    coach = await coaches.get_coach(session.coach_id)
    if coach is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Linked coach record not found"
        )
    return CoachResponse.from_coach(coach)


@router.get("", response_model=List[CoachResponse])
async def list_coaches(coaches: CoachServiceDep):
    """List all coaches"""
    try:
        return [CoachResponse.from_coach(coach) for coach in await coaches.list_coaches()]
    except Exception as e:
        logger.error(f"Failed to list coaches: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list coaches"
        )


@router.get("/{coach_id}", response_model=CoachResponse)
async def get_coach(coach_id: str, coaches: CoachServiceDep):
    """Get a coach profile"""
    coach = await coaches.get_coach(coach_id)
    if coach is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Coach {coach_id} not found"
        )
    return CoachResponse.from_coach(coach)


@router.post("/{coach_id}/ratings", response_model=CoachResponse, status_code=status.HTTP_201_CREATED)
async def rate_coach(coach_id: str, request: RatingRequest, session: CurrentSession, coaches: CoachServiceDep):
    """Rate a coach; each user may rate each coach once"""
    try:
        coach = await coaches.rate_coach(session.uid, coach_id, request.rating)
        return CoachResponse.from_coach(coach)

    except CoachNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Coach {coach_id} not found"
        )
    except AlreadyRated:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already rated this coach"
        )
