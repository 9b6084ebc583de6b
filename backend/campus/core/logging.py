# campus/core/logging.py
import logging
import sys

from campus.core.config import settings


def setup_logging(level: str | None = None) -> logging.Logger:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
    )
    # passlib warns about the bcrypt version attribute on every start
    logging.getLogger("passlib").setLevel(logging.ERROR)
    return logging.getLogger("campus")
