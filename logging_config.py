"""
Logging configuration for the shop service.
"""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Configure the root logger once for the whole process.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        The root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", force=True)
    # uvicorn installs its own handlers; keep its access log quiet in favour of ours
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logging.getLogger()
