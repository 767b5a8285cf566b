"""Practice sessions: persisting attempts, session totals and metrics."""
import json
import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional

from mental_math.db import get_connection
from mental_math.models import (
    Difficulty, Operation, PerformanceMetric, PracticeSession, Problem, ProblemRecord,
)
from mental_math.problems import check_answer

logger = logging.getLogger(__name__)

MODES = ("unlimited", "timed", "lives")
TIMED_OPTIONS = (60, 120, 180)  # seconds
LIVES_OPTIONS = (3, 5, 7)


def start_session(
    db_path: str,
    user_id: str,
    operations: Iterable[Operation],
    difficulty: Difficulty,
    mode: str = "unlimited",
) -> str:
    if mode not in MODES:
        raise ValueError(f"Unknown practice mode: {mode}")
    session_id = uuid.uuid4().hex
    ops = [Operation(op).value for op in operations]
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO sessions (id, user_id, mode, operations, difficulty, started_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (session_id, user_id, mode, json.dumps(ops), Difficulty(difficulty).value,
         datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()
    logger.debug("Started %s session %s (%s, %s)", mode, session_id, ops, difficulty)
    return session_id


def get_session(db_path: str, session_id: str) -> Optional[PracticeSession]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
    conn.close()
    return PracticeSession(**dict(row)) if row else None


def end_session(db_path: str, session_id: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE sessions SET ended_at = ? WHERE id = ?",
        (datetime.now().isoformat(), session_id),
    )
    conn.commit()
    conn.close()


def _update_session_totals(conn, session_id: str) -> None:
    row = conn.execute(
        """SELECT COUNT(*) as total, SUM(is_correct) as correct, SUM(response_time_ms) as time
        FROM problems WHERE session_id = ?""",
        (session_id,),
    ).fetchone()
    avg_time = round(row["time"] / row["total"]) if row["total"] else 0
    conn.execute(
        """UPDATE sessions SET total_problems = ?, correct_count = ?, avg_response_time_ms = ?
        WHERE id = ?""",
        (row["total"], row["correct"] or 0, avg_time, session_id),
    )


def _upsert_metric(conn, user_id: str, problem: Problem, is_correct: bool, response_time_ms: int) -> None:
    now = datetime.now().isoformat()
    existing = conn.execute(
        """SELECT * FROM performance_metrics
        WHERE user_id = ? AND operation = ? AND difficulty = ?""",
        (user_id, problem.operation.value, problem.difficulty.value),
    ).fetchone()
    if existing is None:
        conn.execute(
            """INSERT INTO performance_metrics
            (user_id, operation, difficulty, total_attempts, correct_attempts, accuracy,
             avg_response_time_ms, last_practiced)
            VALUES (?, ?, ?, 1, ?, ?, ?, ?)""",
            (user_id, problem.operation.value, problem.difficulty.value, int(is_correct),
             100.0 if is_correct else 0.0, response_time_ms, now),
        )
        return
    total = existing["total_attempts"] + 1
    correct = existing["correct_attempts"] + int(is_correct)
    avg_time = round(
        (existing["avg_response_time_ms"] * existing["total_attempts"] + response_time_ms) / total
    )
    conn.execute(
        """UPDATE performance_metrics
        SET total_attempts=?, correct_attempts=?, accuracy=?, avg_response_time_ms=?, last_practiced=?
        WHERE id=?""",
        (total, correct, round(correct / total * 100, 2), avg_time, now, existing["id"]),
    )


def record_attempt(
    db_path: str,
    user_id: str,
    problem: Problem,
    user_answer: Optional[float],
    response_time_ms: int,
    session_id: Optional[str] = None,
) -> bool:
    """Persist one answered problem and roll it into the session and metrics."""
    is_correct = check_answer(problem, user_answer)
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO problems
        (id, user_id, session_id, operation, difficulty, operand1, operand2, correct_answer,
         user_answer, is_correct, response_time_ms, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (uuid.uuid4().hex, user_id, session_id, problem.operation.value, problem.difficulty.value,
         problem.operand1, problem.operand2, problem.correct_answer, user_answer,
         int(is_correct), response_time_ms, datetime.now().isoformat()),
    )
    if session_id:
        _update_session_totals(conn, session_id)
    _upsert_metric(conn, user_id, problem, is_correct, response_time_ms)
    conn.commit()
    conn.close()
    logger.debug("Recorded %s attempt (%s) in %d ms", problem.display_text,
                 "correct" if is_correct else "wrong", response_time_ms)
    return is_correct


def get_metrics(db_path: str, user_id: str) -> list[PerformanceMetric]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM performance_metrics WHERE user_id = ? ORDER BY operation, difficulty",
        (user_id,),
    ).fetchall()
    conn.close()
    return [PerformanceMetric(**dict(r)) for r in rows]


def get_recent_problems(
    db_path: str, user_id: str, limit: int = 10, incorrect_only: bool = False,
) -> list[ProblemRecord]:
    """Most recent attempts first."""
    query = "SELECT * FROM problems WHERE user_id = ?"
    if incorrect_only:
        query += " AND is_correct = 0"
    query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
    conn = get_connection(db_path)
    rows = conn.execute(query, (user_id, limit)).fetchall()
    conn.close()
    records = []
    for r in rows:
        record = ProblemRecord(**dict(r))
        record.is_correct = bool(record.is_correct)
        records.append(record)
    return records
