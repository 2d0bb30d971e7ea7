"""Logging helpers."""
from __future__ import annotations

import logging
from pathlib import Path


def configure_logging(level: str, log_dir: Path) -> None:
    """Configure stream and file logging for CLI usage."""
    log_dir.mkdir(parents=True, exist_ok=True)
    resolved = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "hotel_search.log"),
        ],
    )
    # httpx logs every request at INFO; keep them unless debugging.
    if resolved > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
