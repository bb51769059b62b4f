"""Logging helpers.

Library modules log through ``logging.getLogger(__name__)`` and never attach
handlers; applications call ``setup_logger("ta_engine")`` to see the output.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logger(name: str = "ta_engine", level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # one console handler per logger, even if called repeatedly
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)
    return logger
