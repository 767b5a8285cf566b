"""Saving and loading completed assessment results."""
import logging
import uuid
from datetime import datetime
from typing import Optional

from mental_math.db import get_connection
from mental_math.models import AssessmentRecord, AssessmentResult, Operation

logger = logging.getLogger(__name__)

GUEST_USER = "guest"


def _to_record(result: AssessmentResult, record_id: str, user_id: str, completed_at: str) -> AssessmentRecord:
    levels = result.levels
    return AssessmentRecord(
        id=record_id,
        user_id=user_id,
        add_level=levels[Operation.ADD].value,
        subtract_level=levels[Operation.SUBTRACT].value,
        multiply_level=levels[Operation.MULTIPLY].value,
        divide_level=levels[Operation.DIVIDE].value,
        percentage_level=levels[Operation.PERCENTAGE].value,
        overall_rating=result.overall_rating.value,
        total_questions=result.total_questions,
        total_correct=result.total_correct,
        completed_at=completed_at,
    )


def guest_assessment_record(result: AssessmentResult) -> AssessmentRecord:
    """Build a record for display only; nothing is written."""
    now = datetime.now()
    return _to_record(result, f"guest-{int(now.timestamp() * 1000)}", GUEST_USER, now.isoformat())


def save_assessment_result(db_path: str, user_id: str, result: AssessmentResult) -> AssessmentRecord:
    record = _to_record(result, uuid.uuid4().hex, user_id, datetime.now().isoformat())
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO assessments
        (id, user_id, add_level, subtract_level, multiply_level, divide_level, percentage_level,
         overall_rating, total_questions, total_correct, completed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (record.id, record.user_id, record.add_level, record.subtract_level,
         record.multiply_level, record.divide_level, record.percentage_level,
         record.overall_rating, record.total_questions, record.total_correct,
         record.completed_at),
    )
    conn.commit()
    conn.close()
    logger.debug("Saved assessment %s for %s", record.id, user_id)
    return record


def list_assessments(db_path: str, user_id: str, limit: int = 10) -> list[AssessmentRecord]:
    """Most recent first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM assessments WHERE user_id = ?
        ORDER BY completed_at DESC, rowid DESC LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    conn.close()
    return [AssessmentRecord(**dict(r)) for r in rows]


def get_latest_assessment(db_path: str, user_id: str) -> Optional[AssessmentRecord]:
    records = list_assessments(db_path, user_id, limit=1)
    return records[0] if records else None
