from __future__ import annotations

import sys

from loguru import logger

CONTEXT_KEYS = ("trace_id", "node", "user_id", "story_id", "source")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> <level>{level:<8}</level> "
    "[{extra[node]}] user={extra[user_id]} story={extra[story_id]} source={extra[source]} "
    "trace={extra[trace_id]} - {message}"
)


def _fill_context(record: dict) -> None:
    extra = record["extra"]
    for key in CONTEXT_KEYS:
        extra.setdefault(key, "-")


def setup_logging(level: str) -> None:
    """Route loguru to stderr at ``level``; unbound context keys print as ``-``."""
    logger.remove()
    logger.configure(patcher=_fill_context)
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT, backtrace=True, diagnose=False)
