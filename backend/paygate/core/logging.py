"""
Logging setup shared by the API process and scripts.
"""
import logging
from typing import Optional
from paygate.core.config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging defaults for the application."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
