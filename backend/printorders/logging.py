"""structlog setup shared by the CLI and the dramatiq workers."""

import logging
import sys

import structlog
from structlog.typing import Processor

from printorders.config import settings

# Library loggers that are chatty at INFO (SQL echo, S3 request traces)
QUIET_LOGGERS: dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "aiobotocore": logging.WARNING,
    "botocore": logging.WARNING,
    "aioboto3": logging.WARNING,
    "dramatiq": logging.INFO,
}


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso" if settings.log_json else "%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer() -> Processor:
    if settings.log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), exception_formatter=structlog.dev.plain_traceback)


def configure_logging(level: str | None = None) -> None:
    """Route structlog and stdlib loggers through one formatter on stdout.

    ``level`` overrides LOG_LEVEL. Console output by default, one JSON object
    per line when LOG_JSON is set.
    """
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    final_processors: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.log_json:
        final_processors.append(structlog.processors.format_exc_info)
    final_processors.append(_renderer())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=final_processors))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel((level or settings.log_level).upper())

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure logging on first call only; worker modules call this at import."""
    global _configured
    if not _configured:
        configure_logging(level)
        _configured = True
