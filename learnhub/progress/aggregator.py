"""Completion aggregation.

Pure functions deriving course-level completion from lecture entries. The
lecture total is always supplied by the caller from the current course, so
adding lectures to a course lowers the percentage on the next recompute.
Completed entries for lectures since removed from the course still count.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .models import LectureProgress


@dataclass(frozen=True)
class CompletionSummary:
    completed_count: int
    total_lectures: int
    completion_percentage: int
    is_completed: bool


def count_completed(entries: Iterable[LectureProgress]) -> int:
    return sum(1 for entry in entries if entry.is_completed)


def completion_percentage(completed: int, total: int) -> int:
    """Round-half-up percentage clamped to [0, 100]; 0 for an empty course."""
    if total <= 0:
        return 0
    ratio = Decimal(100 * completed) / Decimal(total)
    percentage = int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(0, min(100, percentage))


def aggregate(
    entries: Iterable[LectureProgress], total_lectures: int
) -> CompletionSummary:
    completed = count_completed(entries)
    percentage = completion_percentage(completed, total_lectures)
    return CompletionSummary(
        completed_count=completed,
        total_lectures=total_lectures,
        completion_percentage=percentage,
        is_completed=percentage == 100 and total_lectures > 0,
    )
