from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the organizer process."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
