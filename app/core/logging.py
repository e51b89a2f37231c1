import logging
import sys
from app.core.config import settings

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai", "sqlalchemy.engine", "aiosqlite")

def configure_logging(level: str | None = None) -> None:
    """
    Configure process-wide logging: one stdout handler on the root logger.

    Args:
        level: Root level; defaults to settings.log_level
    """
    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z"
    ))
    root_logger.addHandler(handler)

    # Silence noise
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured for {settings.service_name} ({settings.environment})")
