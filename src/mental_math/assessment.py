"""Adaptive assessment state machine.

An assessment is 20 questions: four rounds, each a shuffled pass over all
five operations. Every operation starts at easy and moves one tier up on a
correct answer and one tier down on a wrong one, clamped at the ends of the
ladder. Transitions never mutate the state they are given.
"""
import logging
import random
from typing import Mapping, NamedTuple, Optional

from mental_math.models import (
    ALL_OPERATIONS,
    AssessmentResult,
    AssessmentState,
    Difficulty,
    Operation,
    OperationProgress,
    OverallRating,
)

logger = logging.getLogger(__name__)

QUESTIONS_PER_OPERATION = 4
TOTAL_QUESTIONS = len(ALL_OPERATIONS) * QUESTIONS_PER_OPERATION

# (minimum average tier score, rating), checked top down
RATING_THRESHOLDS = (
    (3.5, OverallRating.EXPERT),
    (2.5, OverallRating.ADVANCED),
    (1.5, OverallRating.INTERMEDIATE),
)


class Question(NamedTuple):
    operation: Operation
    difficulty: Difficulty


def build_question_queue(rng: Optional[random.Random] = None) -> tuple:
    rng = rng if rng is not None else random
    queue = []
    for _ in range(QUESTIONS_PER_OPERATION):
        round_ops = list(ALL_OPERATIONS)
        rng.shuffle(round_ops)
        queue.extend(round_ops)
    return tuple(queue)


def create_assessment_state(rng: Optional[random.Random] = None) -> AssessmentState:
    """Start a fresh assessment with every operation at easy."""
    state = AssessmentState(
        operation_progress={op: OperationProgress() for op in ALL_OPERATIONS},
        question_queue=build_question_queue(rng),
    )
    logger.debug("Created assessment, queue: %s", [op.value for op in state.question_queue])
    return state


def get_next_question(state: AssessmentState) -> Optional[Question]:
    """Return the (operation, difficulty) to ask next, or None when finished."""
    if state.is_complete or state.current_index >= len(state.question_queue):
        return None
    operation = state.question_queue[state.current_index]
    return Question(operation, state.operation_progress[operation].current_difficulty)


def process_answer(state: AssessmentState, correct: bool) -> AssessmentState:
    """Record an answer for the current question and return the next state."""
    if state.is_complete or state.current_index >= len(state.question_queue):
        raise ValueError("Assessment is already complete")
    operation = state.question_queue[state.current_index]
    progress = state.operation_progress[operation]
    current = progress.current_difficulty
    updated = OperationProgress(
        current_difficulty=current.harder() if correct else current.easier(),
        questions_answered=progress.questions_answered + 1,
        correct_count=progress.correct_count + (1 if correct else 0),
    )
    new_index = state.current_index + 1
    operation_progress = dict(state.operation_progress)
    operation_progress[operation] = updated
    logger.debug(
        "Q%d %s %s: %s -> %s",
        new_index, operation.value, "correct" if correct else "wrong",
        current.value, updated.current_difficulty.value,
    )
    return AssessmentState(
        operation_progress=operation_progress,
        question_queue=state.question_queue,
        current_index=new_index,
        is_complete=new_index >= len(state.question_queue),
    )


def compute_overall_rating(operation_progress: Mapping[Operation, OperationProgress]) -> OverallRating:
    total = sum(operation_progress[op].current_difficulty.score for op in ALL_OPERATIONS)
    avg = total / len(ALL_OPERATIONS)
    for threshold, rating in RATING_THRESHOLDS:
        if avg >= threshold:
            return rating
    return OverallRating.BEGINNER


def get_total_correct(operation_progress: Mapping[Operation, OperationProgress]) -> int:
    return sum(operation_progress[op].correct_count for op in ALL_OPERATIONS)


def build_result(state: AssessmentState) -> AssessmentResult:
    """Summarise a completed assessment."""
    if not state.is_complete:
        raise ValueError("Assessment is not complete")
    progress = state.operation_progress
    result = AssessmentResult(
        levels={op: progress[op].current_difficulty for op in ALL_OPERATIONS},
        overall_rating=compute_overall_rating(progress),
        total_questions=TOTAL_QUESTIONS,
        total_correct=get_total_correct(progress),
    )
    logger.info(
        "Assessment complete: %s (%d/%d correct)",
        result.overall_rating.value, result.total_correct, result.total_questions,
    )
    return result
