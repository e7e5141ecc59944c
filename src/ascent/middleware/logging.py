"""Structured logging for the storage service and the ``ascent`` CLI.

structlog loggers (service) and stdlib loggers (tracker library) share one
``ProcessorFormatter`` so both render the same way on stderr.
"""

import logging
import sys

import structlog

from ascent.config import Settings

# uvicorn's access line repeats what the request id middleware already binds.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class _AscentHandler(logging.StreamHandler):
    """Marker type so repeated setup replaces only our own handler."""


def setup_logging(settings: Settings, *, cli: bool = False) -> None:
    """Configure structlog for JSON or console output.

    ``cli=True`` always uses the console renderer and drops timestamps, so
    warnings stay short and never mix with command output on stdout.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
    ]
    if not cli:
        shared.append(structlog.processors.TimeStamper(fmt="iso"))

    final: list[structlog.types.Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.log_format == "json" and not cli:
        final += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = _AscentHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processors=final))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, _AscentHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
