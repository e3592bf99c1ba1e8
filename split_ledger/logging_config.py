import logging
from typing import Optional

from split_ledger.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the service; safe to call more than once."""
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL echo is too chatty below WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
