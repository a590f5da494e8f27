"""
Student placement test API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.exceptions import PlacementError
from app.models import PlacementResult
from app.schemas.placement import (
    PlacementOutcome,
    PlacementResultResponse,
    PlacementStatus,
    PlacementSubmission,
    SessionResponse,
    SessionStart,
    StudentTestView,
)
from app.services.placement_service import placement_service

router = APIRouter(prefix="/api/placement", tags=["placement"])
logger = logging.getLogger(__name__)


def _client_details(request: Request):
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent", "Unknown")[:255]
    return ip_address, user_agent


def _outcome(result: PlacementResult) -> dict:
    return {
        "recommended_level": result.recommended_level,
        "recommended_course_id": result.recommended_course_id,
        "percentage_score": float(result.percentage_score or 0),
        "correct_answers": result.correct_answers,
        "total_questions": result.total_questions,
        "skipped": bool(result.skipped),
        "difficulty_scores": result.difficulty_scores or {},
        "feedback": result.detailed_feedback or "",
    }


@router.get("/status/{student_id}", response_model=PlacementStatus)
async def get_placement_status(student_id: int, db: Session = Depends(get_db)):
    """Whether the student still needs to take the placement test"""
    return PlacementStatus(**placement_service.get_placement_status(db, student_id))


@router.get("/tests/{test_id}", response_model=StudentTestView)
async def get_test_for_student(test_id: int, db: Session = Depends(get_db)):
    """Published test without correct answers"""
    try:
        return StudentTestView(**placement_service.get_student_test(db, test_id))
    except PlacementError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/sessions", response_model=SessionResponse)
async def start_session(
    payload: SessionStart,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Start an attempt session

    An existing session token is returned unchanged.
    """
    ip_address, user_agent = _client_details(request)

    try:
        session, created = placement_service.start_session(
            db,
            test_id=payload.test_id,
            session_token=payload.session_token,
            student_id=payload.student_id,
            session_type=payload.session_type,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except PlacementError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return SessionResponse(
        session_token=session.session_token,
        student_id=session.student_id,
        status=session.status,
        created=created,
    )


@router.post("/tests/{test_id}/submit", response_model=PlacementOutcome, status_code=201)
async def submit_placement_test(
    test_id: int,
    submission: PlacementSubmission,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Submit a placement test

    - Scores answers per difficulty tier
    - Unanswered questions count toward their tier total
    - Skipping assigns the beginner level
    - One submission per student and test
    """
    ip_address, user_agent = _client_details(request)
    logger.info(f"Placement submission: test={test_id}, student={submission.student_id}, skipped={submission.skipped}")

    try:
        result = placement_service.submit(
            db,
            test_id=test_id,
            student_id=submission.student_id,
            session_token=submission.session_token,
            answers=submission.answers,
            skipped=submission.skipped,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except PlacementError as e:
        logger.warning(f"Placement submission rejected ({e.error_code}): {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return PlacementOutcome(**_outcome(result))


@router.get("/results/{student_id}", response_model=PlacementResultResponse)
async def get_placement_result(
    student_id: int,
    test_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """Stored result, for the first published test unless test_id is given"""
    result = placement_service.get_result(db, student_id, test_id)
    if not result:
        raise HTTPException(status_code=404, detail="Placement result not found")

    return PlacementResultResponse(
        id=result.id,
        student_id=result.student_id,
        test_id=result.test_id,
        answers=result.answers or {},
        completed_at=result.completed_at,
        **_outcome(result),
    )
