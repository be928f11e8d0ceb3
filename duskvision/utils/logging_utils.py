import logging

import structlog
from structlog.stdlib import add_log_level, add_logger_name

# Numba logs every compilation pass at DEBUG; hosts rarely want that
NOISY_LOGGERS = ("numba",)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def setup_logging(level: int | str = logging.INFO, *, json_output: bool = False) -> None:
    """Configure structlog and standard logging for a host of this package.

    ``level`` may be a ``logging`` constant or a name such as ``"debug"``.
    ``json_output`` swaps the console renderer for one JSON object per line,
    which suits headless simulation runs whose logs are collected elsewhere.
    """
    numeric_level = _resolve_level(level)
    logging.basicConfig(level=numeric_level, format="%(message)s")
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))

    if json_output:
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_logger_name,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False),
            *renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
