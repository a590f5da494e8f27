"""
Pydantic schemas for placement test requests and responses
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Any, Optional
from datetime import datetime

from app.services.placement_evaluator import Tier, PlacementLevel


class Choice(BaseModel):
    """One answer option"""
    text: str
    is_correct: bool = False


class Question(BaseModel):
    """Placement question as authored by a teacher"""
    question_text: str = Field(..., min_length=1)
    choices: List[Choice] = Field(..., min_length=1)
    difficulty_level: Tier = Tier.BEGINNER

    @field_validator("choices")
    @classmethod
    def require_correct_choice(cls, choices: List[Choice]) -> List[Choice]:
        if not any(choice.is_correct for choice in choices):
            raise ValueError("At least one choice must be marked correct")
        return choices


class ModuleAssignment(BaseModel):
    """Course suggested for a placement level"""
    course_id: int = Field(..., gt=0)
    title: str = ""


class TestWrite(BaseModel):
    """Request schema for creating or editing a placement test"""
    teacher_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    instructions: str = ""
    status: str = Field("draft", pattern="^(draft|published)$")
    questions: List[Question] = Field(default_factory=list)
    module_assignments: Dict[PlacementLevel, List[ModuleAssignment]] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def strip_title(cls, title: str) -> str:
        title = title.strip()
        if not title:
            raise ValueError("Test title is required")
        return title


class StatusUpdate(BaseModel):
    """Request schema for a lifecycle change"""
    teacher_id: int = Field(..., gt=0)
    status: str = Field(..., pattern="^(draft|published|archived)$")


class ModuleAssignmentsUpdate(BaseModel):
    """Request schema for replacing a test's module assignments"""
    teacher_id: int = Field(..., gt=0)
    assignments: Dict[PlacementLevel, List[ModuleAssignment]]


class TestSummary(BaseModel):
    """Test listing entry"""
    id: int
    title: str
    status: str
    created_by: int
    questions_count: int
    results_count: int
    modules_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TestDetail(TestSummary):
    """Full test as seen by its owner"""
    description: Optional[str] = None
    instructions: Optional[str] = None
    questions: List[Dict[str, Any]]
    module_assignments: Dict[str, List[Dict[str, Any]]]


class StudentChoice(BaseModel):
    text: str


class StudentQuestion(BaseModel):
    """Question without the answer key"""
    index: int
    question_text: str
    difficulty_level: Tier
    choices: List[StudentChoice]


class StudentTestView(BaseModel):
    """Published test as shown to students"""
    id: int
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    total_questions: int
    questions: List[StudentQuestion]


class SessionStart(BaseModel):
    """Schema for starting an attempt session"""
    test_id: int
    session_token: str
    student_id: Optional[int] = None
    session_type: str = "test_attempt"


class SessionResponse(BaseModel):
    session_token: str
    student_id: Optional[int] = None
    status: str
    created: bool


class PlacementSubmission(BaseModel):
    """Schema for a placement test submission"""
    student_id: int
    session_token: str = ""
    answers: Dict[str, Any] = Field(default_factory=dict)  # {question_index: choice_index}
    skipped: bool = False


class PlacementOutcome(BaseModel):
    """Response after a placement submission"""
    recommended_level: PlacementLevel
    recommended_course_id: Optional[int] = None
    percentage_score: float
    correct_answers: int
    total_questions: int
    skipped: bool
    difficulty_scores: Dict[str, Dict[str, int]]
    feedback: str


class PlacementResultResponse(PlacementOutcome):
    """Stored result of a student's attempt"""
    id: int
    student_id: int
    test_id: int
    answers: Dict[str, Any]
    completed_at: Optional[datetime] = None


class PlacementStatus(BaseModel):
    """Whether a student still has to take the placement test"""
    student_id: int
    needs_placement_test: bool
    test_id: Optional[int] = None
    recommended_level: Optional[PlacementLevel] = None
