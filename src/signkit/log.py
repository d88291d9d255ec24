"""
Logging Setup

Library modules log structlog events into the stdlib `signkit` logger,
which carries only a NullHandler: nothing is printed unless the
application attaches a handler. The command line does that through
configure_logging().
"""

import logging
import sys

import structlog

ROOT_LOGGER = "signkit"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())

_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
]


def get_logger(name: str):
    """A structlog logger bound to the stdlib logger `name`."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(level: str = "WARNING", json: bool = False) -> None:
    """Render signkit events on stderr as console text or JSON lines."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    reset_logging()
    root = logging.getLogger(ROOT_LOGGER)
    root.addHandler(handler)
    root.setLevel(numeric_level)


def reset_logging() -> None:
    """Drop handlers added by configure_logging, keeping signkit silent."""
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if not isinstance(handler, logging.NullHandler):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
