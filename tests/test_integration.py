# tests/test_integration.py
"""End-to-end test of the assessment and practice workflow."""
import random

from mental_math.assessment import (
    TOTAL_QUESTIONS, build_result, create_assessment_state, get_next_question, process_answer,
)
from mental_math.dashboard import get_operation_performance, get_overall_stats, suggest_practice_difficulty
from mental_math.db import init_db
from mental_math.models import ALL_OPERATIONS, Difficulty, Operation
from mental_math.practice import end_session, get_session, record_attempt, start_session
from mental_math.problems import generate_problem
from mental_math.results import get_latest_assessment, save_assessment_result


def test_assessment_then_practice_workflow(tmp_db):
    """Assess, save the result, then practice at the suggested level."""
    init_db(tmp_db)
    rng = random.Random(2024)

    # Answer addition questions correctly and everything else wrong.
    state = create_assessment_state(rng)
    asked = 0
    question = get_next_question(state)
    while question is not None:
        problem = generate_problem([question.operation], question.difficulty, rng)
        assert problem.operation is question.operation
        assert problem.difficulty is question.difficulty
        state = process_answer(state, problem.operation is Operation.ADD)
        asked += 1
        question = get_next_question(state)
    assert asked == TOTAL_QUESTIONS

    result = build_result(state)
    assert result.levels[Operation.ADD] is Difficulty.EXPERT
    assert all(result.levels[op] is Difficulty.EASY for op in ALL_OPERATIONS if op is not Operation.ADD)
    assert result.total_correct == 4
    # (4 + 1 + 1 + 1 + 1) / 5 = 1.6
    assert result.overall_rating == "Intermediate"

    save_assessment_result(tmp_db, "local", result)
    latest = get_latest_assessment(tmp_db, "local")
    difficulty = suggest_practice_difficulty(latest, Operation.ADD)
    assert difficulty is Difficulty.EXPERT

    session_id = start_session(tmp_db, "local", [Operation.ADD], difficulty)
    for i in range(5):
        problem = generate_problem([Operation.ADD], difficulty, rng)
        answer = problem.correct_answer if i < 4 else problem.correct_answer + 1
        record_attempt(tmp_db, "local", problem, answer, 2000, session_id)
    end_session(tmp_db, session_id)

    session = get_session(tmp_db, session_id)
    assert session.total_problems == 5
    assert session.correct_count == 4
    assert session.ended_at is not None

    stats = get_overall_stats(tmp_db, "local")
    assert stats["accuracy"] == 80
    add = get_operation_performance(tmp_db, "local")[0]
    assert add["operation"] is Operation.ADD
    assert add["accuracy"] == 80.0
