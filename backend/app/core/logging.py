"""Logging configuration.

Services and repositories log through stdlib ``logging.getLogger(__name__)``;
the API layer uses ``structlog.get_logger()`` with key-value context. Both
are rendered by one ``structlog.stdlib.ProcessorFormatter`` on the root
handler, so stdlib records get the same level, logger name and timestamp
fields as structlog events.

Output is JSON outside development and a readable console format locally.
"""

import logging
import sys

import structlog

_HANDLER_NAME = "vertex"

_SHARED_PROCESSORS: list[structlog.typing.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def build_formatter(*, json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders both structlog events and plain stdlib records."""
    if json_output:
        render: list[structlog.typing.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exc_info itself.
        render = [structlog.dev.ConsoleRenderer()]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *render,
        ],
    )


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    """Configure stdlib logging and structlog.

    Safe to call more than once: the handler installed by a previous call is
    replaced, handlers added by others (e.g. pytest's caplog) are kept.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render as JSON instead of console text.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(build_formatter(json_output=json_output))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
