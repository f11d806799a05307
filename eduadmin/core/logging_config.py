import logging
from typing import Optional

from eduadmin.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the API process (uvicorn keeps its own handlers)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by the engine, keep the sqlalchemy logger quiet by default
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
