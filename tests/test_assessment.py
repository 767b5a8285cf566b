# tests/test_assessment.py
import random
from collections import Counter
from types import SimpleNamespace

import pytest

from mental_math.assessment import (
    QUESTIONS_PER_OPERATION, TOTAL_QUESTIONS, Question, build_result, compute_overall_rating,
    create_assessment_state, get_next_question, get_total_correct, process_answer,
)
from mental_math.models import (
    ALL_OPERATIONS, DIFFICULTIES, Difficulty, Operation, OperationProgress, OverallRating,
)


def _progress(*levels):
    return {op: OperationProgress(current_difficulty=lvl) for op, lvl in zip(ALL_OPERATIONS, levels)}


def _run(state, answers):
    for correct in answers:
        state = process_answer(state, correct)
    return state


def test_total_questions_constant():
    assert TOTAL_QUESTIONS == 20
    assert TOTAL_QUESTIONS == len(ALL_OPERATIONS) * QUESTIONS_PER_OPERATION


def test_queue_composition():
    for _ in range(50):
        state = create_assessment_state()
        assert len(state.question_queue) == TOTAL_QUESTIONS
        counts = Counter(state.question_queue)
        assert set(counts) == set(ALL_OPERATIONS)
        assert all(c == 4 for c in counts.values())


def test_each_round_has_every_operation_once():
    state = create_assessment_state(random.Random(11))
    for start in range(0, TOTAL_QUESTIONS, len(ALL_OPERATIONS)):
        round_ops = state.question_queue[start:start + len(ALL_OPERATIONS)]
        assert sorted(round_ops) == sorted(ALL_OPERATIONS)


def test_initial_state():
    state = create_assessment_state()
    assert state.current_index == 0
    assert state.is_complete is False
    assert set(state.operation_progress) == set(ALL_OPERATIONS)
    for progress in state.operation_progress.values():
        assert progress == OperationProgress(Difficulty.EASY, 0, 0)


def test_seeded_queue_is_reproducible():
    a = create_assessment_state(random.Random(3))
    b = create_assessment_state(random.Random(3))
    assert a.question_queue == b.question_queue


def test_get_next_question_reads_current_slot():
    state = create_assessment_state()
    question = get_next_question(state)
    assert isinstance(question, Question)
    assert question.operation == state.question_queue[0]
    assert question.difficulty is Difficulty.EASY


def test_first_correct_answer_moves_only_first_operation():
    state = create_assessment_state()
    first = state.question_queue[0]
    new_state = process_answer(state, True)
    assert new_state.current_index == 1
    assert new_state.operation_progress[first].current_difficulty is Difficulty.MEDIUM
    assert new_state.operation_progress[first].questions_answered == 1
    assert new_state.operation_progress[first].correct_count == 1
    for op in ALL_OPERATIONS:
        if op is not first:
            assert new_state.operation_progress[op] == OperationProgress()


def test_process_answer_leaves_input_state_untouched():
    state = create_assessment_state()
    process_answer(state, True)
    assert state.current_index == 0
    assert state.operation_progress[state.question_queue[0]].current_difficulty is Difficulty.EASY


def test_wrong_answer_at_easy_stays_easy():
    state = create_assessment_state()
    first = state.question_queue[0]
    new_state = process_answer(state, False)
    assert new_state.operation_progress[first].current_difficulty is Difficulty.EASY
    assert new_state.operation_progress[first].questions_answered == 1
    assert new_state.operation_progress[first].correct_count == 0


def test_difficulty_follows_ladder_one_step_at_a_time():
    rng = random.Random(21)
    for _ in range(30):
        state = create_assessment_state(rng)
        while not state.is_complete:
            op = state.question_queue[state.current_index]
            before = state.operation_progress[op].current_difficulty
            correct = rng.random() < 0.5
            state = process_answer(state, correct)
            after = state.operation_progress[op].current_difficulty
            assert after in DIFFICULTIES
            step = after.score - before.score
            if correct:
                assert step == (0 if before is Difficulty.EXPERT else 1)
            else:
                assert step == (0 if before is Difficulty.EASY else -1)


def test_progress_consistency_after_partial_run():
    rng = random.Random(5)
    state = create_assessment_state(rng)
    answers = [rng.random() < 0.6 for _ in range(13)]
    state = _run(state, answers)
    done = Counter(state.question_queue[:state.current_index])
    for op in ALL_OPERATIONS:
        progress = state.operation_progress[op]
        assert progress.questions_answered == done[op]
        assert progress.correct_count <= progress.questions_answered
    assert get_total_correct(state.operation_progress) == sum(answers)


def test_completion_only_at_end():
    state = create_assessment_state()
    for i in range(TOTAL_QUESTIONS):
        assert state.is_complete is False
        assert get_next_question(state) is not None
        state = process_answer(state, i % 2 == 0)
    assert state.current_index == TOTAL_QUESTIONS
    assert state.is_complete is True
    assert get_next_question(state) is None


def test_process_answer_after_completion_raises():
    state = _run(create_assessment_state(), [True] * TOTAL_QUESTIONS)
    with pytest.raises(ValueError):
        process_answer(state, True)


def test_all_correct_reaches_expert():
    state = _run(create_assessment_state(), [True] * TOTAL_QUESTIONS)
    for progress in state.operation_progress.values():
        assert progress.current_difficulty is Difficulty.EXPERT
    assert get_total_correct(state.operation_progress) == 20
    assert compute_overall_rating(state.operation_progress) == "Expert"


def test_all_wrong_stays_easy():
    state = _run(create_assessment_state(), [False] * TOTAL_QUESTIONS)
    for progress in state.operation_progress.values():
        assert progress.current_difficulty is Difficulty.EASY
    assert get_total_correct(state.operation_progress) == 0
    assert compute_overall_rating(state.operation_progress) is OverallRating.BEGINNER


def test_rating_extremes():
    assert compute_overall_rating(_progress(*[Difficulty.EASY] * 5)) is OverallRating.BEGINNER
    assert compute_overall_rating(_progress(*[Difficulty.EXPERT] * 5)) is OverallRating.EXPERT


@pytest.mark.parametrize("levels, expected", [
    ((Difficulty.EXPERT,) * 3 + (Difficulty.HARD,) + (Difficulty.MEDIUM,), OverallRating.ADVANCED),  # 3.4
    ((Difficulty.EXPERT,) * 4 + (Difficulty.MEDIUM,), OverallRating.EXPERT),  # 3.6
    ((Difficulty.HARD,) * 3 + (Difficulty.MEDIUM,) * 2, OverallRating.ADVANCED),  # 2.6
    ((Difficulty.HARD,) * 2 + (Difficulty.MEDIUM,) * 3, OverallRating.INTERMEDIATE),  # 2.4
    ((Difficulty.MEDIUM,) * 3 + (Difficulty.EASY,) * 2, OverallRating.INTERMEDIATE),  # 1.6
    ((Difficulty.MEDIUM,) * 2 + (Difficulty.EASY,) * 3, OverallRating.BEGINNER),  # 1.4
])
def test_rating_buckets(levels, expected):
    assert compute_overall_rating(_progress(*levels)) is expected


@pytest.mark.parametrize("avg, expected", [
    (3.5, OverallRating.EXPERT),
    (2.5, OverallRating.ADVANCED),
    (1.5, OverallRating.INTERMEDIATE),
])
def test_rating_boundaries_round_up(avg, expected):
    # Five integer tiers can't average exactly x.5; stand-ins carry the score directly.
    progress = {
        op: SimpleNamespace(current_difficulty=SimpleNamespace(score=avg), correct_count=0)
        for op in ALL_OPERATIONS
    }
    assert compute_overall_rating(progress) is expected


def test_rating_ignores_correct_counts():
    progress = {op: OperationProgress(Difficulty.EASY, 4, 3) for op in ALL_OPERATIONS}
    assert compute_overall_rating(progress) is OverallRating.BEGINNER
    assert get_total_correct(progress) == 15


def test_build_result():
    state = _run(create_assessment_state(), [True] * TOTAL_QUESTIONS)
    result = build_result(state)
    assert result.levels == {op: Difficulty.EXPERT for op in ALL_OPERATIONS}
    assert result.overall_rating is OverallRating.EXPERT
    assert result.total_questions == 20
    assert result.total_correct == 20


def test_build_result_requires_complete_state():
    with pytest.raises(ValueError):
        build_result(create_assessment_state())
