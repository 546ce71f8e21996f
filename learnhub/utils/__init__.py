"""Utility modules for learnhub."""

from learnhub.utils.dates import ensure_utc_aware, utcnow


__all__ = ["ensure_utc_aware", "utcnow"]
