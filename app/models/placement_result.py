"""
PlacementResult model - the permanent record of one student's attempt
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, TIMESTAMP, DECIMAL,
    ForeignKey, UniqueConstraint, func
)
from app.database import Base
from app.models.placement_test import JSONType


class PlacementResult(Base):
    """
    Placement results table - at most one row per (student, test)

    The unique constraint is what serializes concurrent submissions.
    """
    __tablename__ = "placement_results"
    __table_args__ = (
        UniqueConstraint("student_id", "test_id", name="uq_placement_result_student_test"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, nullable=False, index=True)
    test_id = Column(Integer, ForeignKey("placement_tests.id"), nullable=False)
    session_token = Column(String(128))
    answers = Column(JSONType)  # Raw submission
    total_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    percentage_score = Column(DECIMAL(5, 2), nullable=False, default=0)
    difficulty_scores = Column(JSONType)  # {tier: {correct, total}}
    recommended_level = Column(String(50), nullable=False)
    recommended_course_id = Column(Integer, nullable=True)
    detailed_feedback = Column(Text)
    skipped = Column(Boolean, default=False)
    status = Column(String(20), default="completed")
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    completed_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return (
            f"<PlacementResult(student_id={self.student_id}, test_id={self.test_id}, "
            f"level={self.recommended_level})>"
        )
