from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once; uvicorn reloads and test imports would
    otherwise stack duplicate handlers.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if any(getattr(handler, "_lead_intake", False) for handler in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._lead_intake = True  # type: ignore[attr-defined]
    root.addHandler(handler)
