"""Logging setup shared by the API process and scripts."""
import logging

from telecare.core import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured

    if _configured:
        return

    logging.basicConfig(level=(level or config.LOG_LEVEL).upper(), format=LOG_FORMAT)
    # SQL echo is noisy at INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
