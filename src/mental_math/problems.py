"""Problem generation with clean integer answers per difficulty tier."""
import logging
import math
import random
from typing import Callable, Iterable, Optional

from mental_math.models import Difficulty, Operation, Problem

logger = logging.getLogger(__name__)

# Inclusive ranges per tier.
RANGES = {
    Difficulty.EASY: {"add": (1, 50), "mul": (1, 10), "div_result": (1, 10), "pct_base": 100},
    Difficulty.MEDIUM: {"add": (10, 500), "mul": (5, 50), "div_result": (1, 50), "pct_base": 200},
    Difficulty.HARD: {"add": (100, 5000), "mul": (10, 100), "div_result": (1, 100), "pct_base": 1000},
    Difficulty.EXPERT: {"add": (1000, 50000), "mul": (50, 500), "div_result": (1, 500), "pct_base": 10000},
}

DIVISOR_RANGE = (2, 12)

EASY_PERCENTAGES = (10, 25, 50)
PERCENTAGES = (5, 10, 15, 20, 25, 30, 40, 50, 60, 75, 80)

SYMBOLS = {
    Operation.ADD: "+",
    Operation.SUBTRACT: "-",
    Operation.MULTIPLY: "×",
    Operation.DIVIDE: "÷",
}


def format_problem(operation: Operation, operand1: int, operand2: int) -> str:
    """Render a problem for display, e.g. "25 + 13" or "10% of 200"."""
    operation = Operation(operation)
    if operation is Operation.PERCENTAGE:
        return f"{operand1}% of {operand2}"
    return f"{operand1} {SYMBOLS[operation]} {operand2}"


def _make(operation: Operation, difficulty: Difficulty, a: int, b: int, answer: int) -> Problem:
    return Problem(
        operation=operation,
        difficulty=difficulty,
        operand1=a,
        operand2=b,
        correct_answer=answer,
        display_text=format_problem(operation, a, b),
    )


def generate_addition(difficulty: Difficulty, rng=random) -> Problem:
    lo, hi = RANGES[difficulty]["add"]
    a = rng.randint(lo, hi)
    b = rng.randint(lo, hi)
    return _make(Operation.ADD, difficulty, a, b, a + b)


def generate_subtraction(difficulty: Difficulty, rng=random) -> Problem:
    lo, hi = RANGES[difficulty]["add"]
    a = rng.randint(lo, hi)
    b = rng.randint(lo, hi)
    if b > a:
        a, b = b, a
    return _make(Operation.SUBTRACT, difficulty, a, b, a - b)


def generate_multiplication(difficulty: Difficulty, rng=random) -> Problem:
    lo, hi = RANGES[difficulty]["mul"]
    a = rng.randint(lo, hi)
    b = rng.randint(lo, hi)
    return _make(Operation.MULTIPLY, difficulty, a, b, a * b)


def generate_division(difficulty: Difficulty, rng=random) -> Problem:
    # Answer first, so the dividend is always an exact multiple of the divisor.
    lo, hi = RANGES[difficulty]["div_result"]
    answer = rng.randint(lo, hi)
    divisor = rng.randint(*DIVISOR_RANGE)
    return _make(Operation.DIVIDE, difficulty, answer * divisor, divisor, answer)


def generate_percentage(difficulty: Difficulty, rng=random) -> Problem:
    max_base = RANGES[difficulty]["pct_base"]
    candidates = EASY_PERCENTAGES if difficulty is Difficulty.EASY else PERCENTAGES
    percentage = rng.choice(candidates)
    # base * percentage is divisible by 100 iff base is a multiple of step
    step = 100 // math.gcd(percentage, 100)
    multiple = rng.randint(1, max(1, max_base // step))
    base = multiple * step
    return _make(Operation.PERCENTAGE, difficulty, percentage, base, base * percentage // 100)


GENERATORS: dict[Operation, Callable[..., Problem]] = {
    Operation.ADD: generate_addition,
    Operation.SUBTRACT: generate_subtraction,
    Operation.MULTIPLY: generate_multiplication,
    Operation.DIVIDE: generate_division,
    Operation.PERCENTAGE: generate_percentage,
}


def generate_problem(
    operations: Iterable[Operation],
    difficulty: Difficulty,
    rng: Optional[random.Random] = None,
) -> Problem:
    """Generate one problem for an operation picked uniformly from ``operations``.

    Args:
        operations: Non-empty collection of candidate operations.
        difficulty: Tier controlling the operand ranges.
        rng: Optional ``random.Random`` for reproducible draws.

    Raises:
        ValueError: if ``operations`` is empty.
    """
    # Sorted so a seeded rng picks the same operation from a set every run.
    candidates = sorted({Operation(op) for op in operations}, key=list(Operation).index)
    if not candidates:
        raise ValueError("At least one operation is required")
    rng = rng if rng is not None else random
    operation = candidates[0] if len(candidates) == 1 else rng.choice(candidates)
    problem = GENERATORS[operation](Difficulty(difficulty), rng)
    logger.debug("Generated %s problem: %s = %s", difficulty, problem.display_text, problem.correct_answer)
    return problem


def parse_answer(text: str) -> Optional[float]:
    """Parse user input into a number, or None if it isn't one."""
    cleaned = text.strip().replace(",", "")
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def check_answer(problem: Problem, answer: Optional[float]) -> bool:
    return answer is not None and answer == problem.correct_answer
