"""Course progress tracking module.

Provides:
- Per-lecture completion and watch time
- Course completion percentage and flag (see ``aggregator``)
- Lazy progress creation, complete-all and reset
"""

from .models import PROGRESS_TABLES_CQL, CourseProgress, LectureProgress


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseProgress",
    "LectureProgress",
]
