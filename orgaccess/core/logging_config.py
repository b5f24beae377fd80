"""
Logging setup for the service.
"""
import logging

from orgaccess.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure the root logger once at application start-up."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is noisy; keep engine logs at WARNING unless asked otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
