"""Data classes for the mental math domain model."""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class Operation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    PERCENTAGE = "percentage"


ALL_OPERATIONS = tuple(Operation)


class Difficulty(str, Enum):
    """Difficulty tiers, ordered easy < medium < hard < expert."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def score(self) -> int:
        return DIFFICULTIES.index(self) + 1

    def harder(self) -> "Difficulty":
        """One tier up, clamped at expert."""
        idx = DIFFICULTIES.index(self)
        return DIFFICULTIES[min(idx + 1, len(DIFFICULTIES) - 1)]

    def easier(self) -> "Difficulty":
        """One tier down, clamped at easy."""
        idx = DIFFICULTIES.index(self)
        return DIFFICULTIES[max(idx - 1, 0)]


DIFFICULTIES = tuple(Difficulty)


class OverallRating(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


@dataclass(frozen=True)
class Problem:
    operation: Operation
    difficulty: Difficulty
    operand1: int
    operand2: int
    correct_answer: int
    display_text: str


@dataclass(frozen=True)
class OperationProgress:
    current_difficulty: Difficulty = Difficulty.EASY
    questions_answered: int = 0
    correct_count: int = 0


@dataclass(frozen=True)
class AssessmentState:
    operation_progress: Mapping[Operation, OperationProgress]
    question_queue: tuple
    current_index: int = 0
    is_complete: bool = False

    def __post_init__(self) -> None:
        # Freeze the mapping so transitions have to build a new state.
        if not isinstance(self.operation_progress, MappingProxyType):
            object.__setattr__(
                self, "operation_progress", MappingProxyType(dict(self.operation_progress))
            )
        object.__setattr__(self, "question_queue", tuple(self.question_queue))


@dataclass(frozen=True)
class AssessmentResult:
    levels: Mapping[Operation, Difficulty]
    overall_rating: OverallRating
    total_questions: int
    total_correct: int


@dataclass
class ProblemRecord:
    id: str
    user_id: str
    operation: str
    difficulty: str
    operand1: int
    operand2: int
    correct_answer: int
    user_answer: Optional[float]
    is_correct: bool
    response_time_ms: int
    session_id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class PracticeSession:
    id: str
    user_id: str
    operations: str = "[]"  # JSON
    difficulty: str = "easy"
    mode: str = "unlimited"
    total_problems: int = 0
    correct_count: int = 0
    avg_response_time_ms: int = 0
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


@dataclass
class PerformanceMetric:
    id: int
    user_id: str
    operation: str
    difficulty: str
    total_attempts: int = 0
    correct_attempts: int = 0
    accuracy: float = 0.0
    avg_response_time_ms: int = 0
    last_practiced: Optional[str] = None


@dataclass
class AssessmentRecord:
    id: str
    user_id: str
    add_level: str
    subtract_level: str
    multiply_level: str
    divide_level: str
    percentage_level: str
    overall_rating: str
    total_questions: int
    total_correct: int
    completed_at: Optional[str] = None

    def level_for(self, operation: Operation) -> Difficulty:
        return Difficulty(getattr(self, f"{Operation(operation).value}_level"))
