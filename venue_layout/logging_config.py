"""Centralized logging configuration."""

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger


COMPONENT = "component"

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        f"<lg>{{extra[{COMPONENT}]}}</> <c>{{name}}::{{function}}:{{line}}</>",
        "{message}",
    )
)


def setup_logging(level: Optional[str] = None, *, log_file: Optional[str] = None, component: str = "layout") -> None:
    """Replace loguru's default handler with our format on stderr, plus an optional rotating file."""
    level = (level or os.environ.get("VENUE_LAYOUT_LOG_LEVEL", "INFO")).upper()
    logger.remove()
    logger.configure(extra={COMPONENT: component})
    logger.add(sys.stderr, format=log_format, level=level)
    if log_file:
        logger.add(
            log_file,
            format=log_format,
            level=level,
            rotation="1 day",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )
