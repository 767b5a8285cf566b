"""Progress dashboard statistics and display helpers."""
from typing import Optional

from mental_math.db import get_connection
from mental_math.models import ALL_OPERATIONS, AssessmentRecord, Difficulty, Operation, OverallRating
from mental_math.practice import get_metrics

OPERATION_LABELS = {
    Operation.ADD: "Addition",
    Operation.SUBTRACT: "Subtraction",
    Operation.MULTIPLY: "Multiplication",
    Operation.DIVIDE: "Division",
    Operation.PERCENTAGE: "Percentages",
}

RATING_COLORS = {
    OverallRating.BEGINNER: "red",
    OverallRating.INTERMEDIATE: "dark_orange",
    OverallRating.ADVANCED: "yellow",
    OverallRating.EXPERT: "green",
}


def get_accuracy_label(accuracy: float) -> str:
    if accuracy >= 90:
        return "SHARP"
    elif accuracy >= 75:
        return "SOLID"
    elif accuracy >= 50:
        return "SHAKY"
    return "NEEDS PRACTICE"


def get_accuracy_color(accuracy: float) -> str:
    if accuracy >= 90:
        return "green"
    elif accuracy >= 75:
        return "yellow"
    elif accuracy >= 50:
        return "dark_orange"
    return "red"


def get_rating_color(rating: str) -> str:
    return RATING_COLORS[OverallRating(rating)]


def get_overall_stats(db_path: str, user_id: str) -> dict:
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) as total, SUM(is_correct) as correct, AVG(response_time_ms) as avg_time
        FROM problems WHERE user_id = ?""",
        (user_id,),
    ).fetchone()
    sessions = conn.execute("SELECT COUNT(*) FROM sessions WHERE user_id = ?", (user_id,)).fetchone()[0]
    conn.close()
    total = row["total"]
    correct = row["correct"] or 0
    return {
        "total_problems": total,
        "total_correct": correct,
        "accuracy": round(correct / total * 100) if total else 0,
        "avg_response_time_ms": round(row["avg_time"]) if total else 0,
        "sessions_count": sessions,
    }


def get_operation_performance(db_path: str, user_id: str) -> list[dict]:
    """Per-operation totals across every difficulty, in canonical operation order."""
    totals = {op.value: {"attempts": 0, "correct": 0, "time": 0} for op in ALL_OPERATIONS}
    for m in get_metrics(db_path, user_id):
        t = totals[m.operation]
        t["attempts"] += m.total_attempts
        t["correct"] += m.correct_attempts
        t["time"] += m.avg_response_time_ms * m.total_attempts
    results = []
    for op in ALL_OPERATIONS:
        t = totals[op.value]
        attempts = t["attempts"]
        accuracy = round(t["correct"] / attempts * 100, 1) if attempts else 0.0
        results.append({
            "operation": op,
            "name": OPERATION_LABELS[op],
            "attempts": attempts,
            "accuracy": accuracy,
            "avg_response_time_ms": round(t["time"] / attempts) if attempts else 0,
            "label": get_accuracy_label(accuracy),
        })
    return results


def suggest_practice_difficulty(
    record: Optional[AssessmentRecord],
    operation: Operation,
    default: Difficulty = Difficulty.EASY,
) -> Difficulty:
    """Level reached in the latest assessment, or ``default`` when there isn't one."""
    if record is None:
        return default
    return record.level_for(operation)
