"""
Student-facing placement operations: sessions, submission and results
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import (
    DuplicateSubmission, InvalidSubmission, PersistenceFailure, TestNotFound
)
from app.models import PlacementResult, PlacementSession, PlacementTest
from app.services.placement_evaluator import placement_evaluator, question_tier
from app.utils.cache import cache_service

logger = logging.getLogger(__name__)

PUBLISHED = "published"


class PlacementService:
    """
    Service wrapping the evaluator with persistence

    Strategy:
    - Only published tests can be started or submitted
    - One result per (student, test), enforced by a unique constraint
    - Result insert and session completion share one transaction
    """

    def get_published_test(self, db: Session, test_id: int) -> PlacementTest:
        test = db.query(PlacementTest).filter(
            PlacementTest.id == test_id,
            PlacementTest.status == PUBLISHED
        ).first()
        if not test:
            raise TestNotFound("Test not found or not published")
        return test

    def first_published_test(self, db: Session) -> Optional[PlacementTest]:
        return db.query(PlacementTest).filter(
            PlacementTest.status == PUBLISHED
        ).order_by(PlacementTest.id.asc()).first()

    def find_result(self, db: Session, student_id: int, test_id: int) -> Optional[PlacementResult]:
        return db.query(PlacementResult).filter(
            PlacementResult.student_id == student_id,
            PlacementResult.test_id == test_id
        ).first()

    def get_student_test(self, db: Session, test_id: int) -> Dict[str, Any]:
        """
        Published test without the answer key

        Served from cache when available.
        """
        cache_key = cache_service.test_key(test_id)
        cached = cache_service.get(cache_key)
        if cached:
            return cached

        test = self.get_published_test(db, test_id)
        questions = test.questions or []
        view = {
            "id": test.id,
            "title": test.title,
            "description": test.description,
            "instructions": test.instructions,
            "total_questions": len(questions),
            "questions": [
                {
                    "index": index,
                    "question_text": question.get("question_text", ""),
                    "difficulty_level": question_tier(question).value,
                    "choices": [{"text": choice.get("text", "")} for choice in question.get("choices") or []],
                }
                for index, question in enumerate(questions)
            ],
        }

        cache_service.set(cache_key, view)
        return view

    def start_session(
        self,
        db: Session,
        test_id: int,
        session_token: str,
        student_id: Optional[int] = None,
        session_type: str = "test_attempt",
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> tuple:
        """
        Open an attempt session

        Returns:
            Tuple of (session, created); an existing token is returned unchanged
        """
        session_token = (session_token or "").strip()
        if not test_id or test_id <= 0 or not session_token:
            raise InvalidSubmission("Missing required parameters")

        self.get_published_test(db, test_id)

        existing = db.query(PlacementSession).filter(
            PlacementSession.session_token == session_token
        ).first()
        if existing:
            return existing, False

        now = datetime.now(timezone.utc)
        session = PlacementSession(
            student_id=student_id,
            session_token=session_token,
            session_type=session_type or "test_attempt",
            session_data={"test_id": test_id, "started_at": now.isoformat()},
            status="active",
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=(now + timedelta(hours=settings.SESSION_TTL_HOURS)).replace(tzinfo=None),
        )

        try:
            db.add(session)
            db.commit()
            db.refresh(session)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to start placement session: {str(e)}")
            raise PersistenceFailure("Could not start the placement session") from e

        logger.info(f"Placement session started: test={test_id}, student={student_id}")
        return session, True

    def submit(
        self,
        db: Session,
        test_id: int,
        student_id: int,
        session_token: str,
        answers: Optional[Dict[str, Any]] = None,
        skipped: bool = False,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> PlacementResult:
        """
        Evaluate a submission and persist its result

        Raises:
            InvalidSubmission: missing identifiers
            TestNotFound: test absent or not published
            DuplicateSubmission: student already has a result for this test
            PersistenceFailure: the write failed; nothing was stored
        """
        session_token = (session_token or "").strip()
        if not test_id or test_id <= 0 or not student_id or student_id <= 0:
            raise InvalidSubmission("Missing required parameters")
        if not session_token:
            raise InvalidSubmission("Missing required parameters")

        test = self.get_published_test(db, test_id)

        if self.find_result(db, student_id, test_id):
            raise DuplicateSubmission("You have already taken this placement test")

        answers = answers or {}
        evaluation = placement_evaluator.evaluate(
            questions=test.questions or [],
            module_assignments=test.module_assignments or {},
            answers=answers,
            skipped=skipped,
        )

        result = PlacementResult(
            student_id=student_id,
            test_id=test_id,
            session_token=session_token,
            answers=answers,
            total_questions=evaluation.total_questions,
            correct_answers=evaluation.correct_answers,
            percentage_score=evaluation.percentage_score,
            difficulty_scores=evaluation.difficulty_scores(),
            recommended_level=evaluation.recommended_level.value,
            recommended_course_id=evaluation.recommended_course_id,
            detailed_feedback=evaluation.feedback,
            skipped=evaluation.skipped,
            status="completed",
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            db.add(result)
            db.query(PlacementSession).filter(
                PlacementSession.session_token == session_token
            ).update({"status": "completed"}, synchronize_session=False)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            # A concurrent submission for the same pair got there first
            if self.find_result(db, student_id, test_id):
                logger.warning(f"Duplicate placement submission: student={student_id}, test={test_id}")
                raise DuplicateSubmission("You have already taken this placement test") from e
            logger.error(f"Integrity error saving placement result: {str(e)}")
            raise PersistenceFailure("Database error occurred. Please try again.") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error in placement submission: {str(e)}")
            raise PersistenceFailure("Database error occurred. Please try again.") from e

        db.refresh(result)
        logger.info(
            f"Placement result saved: {result.id}, student={student_id}, test={test_id}, "
            f"level={result.recommended_level}, score={result.percentage_score}"
        )
        return result

    def get_result(
        self,
        db: Session,
        student_id: int,
        test_id: Optional[int] = None
    ) -> Optional[PlacementResult]:
        """Result for a test, defaulting to the first published test"""
        if test_id is None:
            test = self.first_published_test(db)
            if not test:
                return None
            test_id = test.id
        return self.find_result(db, student_id, test_id)

    def get_placement_status(self, db: Session, student_id: int) -> Dict[str, Any]:
        """Whether the student still has to take the first published test"""
        test = self.first_published_test(db)
        if not test:
            return {
                "student_id": student_id,
                "needs_placement_test": False,
                "test_id": None,
                "recommended_level": None,
            }

        result = self.find_result(db, student_id, test.id)
        return {
            "student_id": student_id,
            "needs_placement_test": result is None,
            "test_id": test.id,
            "recommended_level": result.recommended_level if result else None,
        }


# Global instance
placement_service = PlacementService()
