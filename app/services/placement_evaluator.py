"""
Placement test evaluation and level recommendation

Scores a submission per difficulty tier, picks a placement level from an
ordered rule table and maps the level to the teacher's assigned courses.
Pure computation: no database access.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """Difficulty tier attached to each question"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PlacementLevel(str, Enum):
    """Recommended proficiency level"""
    BEGINNER = "beginner"
    INTERMEDIATE_BEGINNER = "intermediate_beginner"
    ADVANCED_BEGINNER = "advanced_beginner"


LEVEL_LABELS = {
    PlacementLevel.BEGINNER: "a Beginner",
    PlacementLevel.INTERMEDIATE_BEGINNER: "an Intermediate Beginner",
    PlacementLevel.ADVANCED_BEGINNER: "an Advanced Beginner",
}


@dataclass
class TierTally:
    """Correct and total question counts for one tier"""
    correct: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"correct": self.correct, "total": self.total}


@dataclass(frozen=True)
class TierThreshold:
    """Minimum correct answers and minimum questions seen for a tier"""
    tier: Tier
    min_correct: int
    min_total: int

    def met_by(self, tallies: Mapping[Tier, TierTally]) -> bool:
        tally = tallies[self.tier]
        return tally.correct >= self.min_correct and tally.total >= self.min_total


BEGINNER_GATE = TierThreshold(Tier.BEGINNER, min_correct=6, min_total=7)
INTERMEDIATE_GATE = TierThreshold(Tier.INTERMEDIATE, min_correct=2, min_total=6)

# Evaluated top to bottom, first rule whose thresholds all hold wins.
LEVEL_RULES: List[Tuple[Tuple[TierThreshold, ...], PlacementLevel]] = [
    ((BEGINNER_GATE, INTERMEDIATE_GATE), PlacementLevel.ADVANCED_BEGINNER),
    ((BEGINNER_GATE,), PlacementLevel.INTERMEDIATE_BEGINNER),
]
DEFAULT_LEVEL = PlacementLevel.BEGINNER

SKIPPED_FEEDBACK = (
    "You chose to skip the placement test. "
    "You have been assigned to the beginner level."
)


@dataclass
class Evaluation:
    """Outcome of scoring one submission"""
    tallies: Dict[Tier, TierTally]
    total_questions: int
    correct_answers: int
    percentage_score: Decimal
    recommended_level: PlacementLevel
    recommended_course_id: Optional[int]
    feedback: str
    skipped: bool = False
    assigned_modules: List[Dict[str, Any]] = field(default_factory=list)

    def difficulty_scores(self) -> Dict[str, Dict[str, int]]:
        """Tallies keyed by tier name, as stored on the result"""
        return {tier.value: tally.to_dict() for tier, tally in self.tallies.items()}


def empty_tallies() -> Dict[Tier, TierTally]:
    return {tier: TierTally() for tier in Tier}


def question_tier(question: Mapping[str, Any]) -> Tier:
    """Tier of a stored question; untagged or unknown tags count as beginner"""
    value = question.get("difficulty_level") or Tier.BEGINNER.value
    try:
        return Tier(value)
    except ValueError:
        logger.warning(f"Unknown difficulty level {value!r}, counting question as beginner")
        return Tier.BEGINNER


def decide_level(tallies: Mapping[Tier, TierTally]) -> PlacementLevel:
    """Apply LEVEL_RULES to the tallies"""
    for thresholds, level in LEVEL_RULES:
        if all(threshold.met_by(tallies) for threshold in thresholds):
            return level
    return DEFAULT_LEVEL


def percentage(correct: int, total: int) -> Decimal:
    """Score as a percentage rounded half-up to two places"""
    if total <= 0:
        return Decimal("0.00")
    value = Decimal(100) * Decimal(correct) / Decimal(total)
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class PlacementEvaluator:
    """
    Evaluates placement test submissions

    Policy:
    - Every question counts toward its tier's total, answered or not, so
      skipping hard questions cannot improve a ratio
    - The beginner tier gates everything: intermediate results only matter
      once the beginner threshold is met
    """

    def evaluate(
        self,
        questions: List[Mapping[str, Any]],
        module_assignments: Optional[Mapping[str, List[Mapping[str, Any]]]],
        answers: Optional[Mapping[Any, Any]],
        skipped: bool = False
    ) -> Evaluation:
        """
        Score a submission

        Args:
            questions: Ordered question dicts with choices and difficulty_level
            module_assignments: {level: [{course_id, title}]} configured by the teacher
            answers: {question_index: choice_index}, possibly partial
            skipped: Student chose to skip the test

        Returns:
            Evaluation with tallies, level, course and feedback
        """
        module_assignments = module_assignments or {}
        tallies = empty_tallies()
        total_questions = len(questions)

        if skipped:
            for question in questions:
                tallies[question_tier(question)].total += 1

            logger.info(f"Placement skipped: {total_questions} questions, level=beginner")

            return Evaluation(
                tallies=tallies,
                total_questions=total_questions,
                correct_answers=0,
                percentage_score=percentage(0, total_questions),
                recommended_level=PlacementLevel.BEGINNER,
                recommended_course_id=None,
                feedback=SKIPPED_FEEDBACK,
                skipped=True,
            )

        chosen = self._normalize_answers(answers or {})
        correct_answers = 0

        for index, question in enumerate(questions):
            tally = tallies[question_tier(question)]
            tally.total += 1

            if self._is_correct(question, chosen.get(index)):
                tally.correct += 1
                correct_answers += 1

        level = decide_level(tallies)
        assigned = list(module_assignments.get(level.value) or [])
        course_id = assigned[0].get("course_id") if assigned else None

        tier_summary = {tier.value: (tally.correct, tally.total) for tier, tally in tallies.items()}
        logger.info(
            f"Placement evaluated: {correct_answers}/{total_questions}, "
            f"tiers={tier_summary}, level={level.value}, course={course_id}"
        )

        return Evaluation(
            tallies=tallies,
            total_questions=total_questions,
            correct_answers=correct_answers,
            percentage_score=percentage(correct_answers, total_questions),
            recommended_level=level,
            recommended_course_id=course_id,
            feedback=self._generate_feedback(tallies, level, assigned),
            assigned_modules=assigned,
        )

    def _normalize_answers(self, answers: Mapping[Any, Any]) -> Dict[int, int]:
        """
        Map question index to choice index

        Keys arrive as strings from JSON. Entries that are not integers are
        dropped and the question is treated as unanswered.
        """
        chosen = {}
        for key, value in answers.items():
            index = self._as_index(key)
            choice = self._as_index(value)
            if index is not None and choice is not None:
                chosen[index] = choice
        return chosen

    @staticmethod
    def _as_index(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None

    @staticmethod
    def _is_correct(question: Mapping[str, Any], choice_index: Optional[int]) -> bool:
        if choice_index is None:
            return False

        choices = question.get("choices") or []
        if not 0 <= choice_index < len(choices):
            return False

        return bool(choices[choice_index].get("is_correct", False))

    def _generate_feedback(
        self,
        tallies: Mapping[Tier, TierTally],
        level: PlacementLevel,
        assigned: List[Mapping[str, Any]]
    ) -> str:
        """Compose the summary shown to the student"""

        scores = ", ".join(
            f"{tier.value.capitalize()}: {tallies[tier].correct}/{tallies[tier].total}"
            for tier in Tier
        )
        feedback_parts = [
            f"Based on your performance: {scores}.",
            f"You're {LEVEL_LABELS[level]}!",
        ]

        if not assigned:
            feedback_parts.append("No specific modules assigned for this level.")
        elif len(assigned) == 1:
            first = assigned[0].get("title") or "Module 1"
            feedback_parts.append(f"Start with {first}.")
        else:
            first = assigned[0].get("title") or "Module 1"
            last = assigned[-1].get("title") or "Final Module"
            feedback_parts.append(f"Start with {first} - {last}.")

        return " ".join(feedback_parts)


# Global instance
placement_evaluator = PlacementEvaluator()
