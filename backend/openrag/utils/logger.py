"""
Structured logging for indexing and search runs.

Events logged inside ``run_context`` carry the run's id plus any fields bound
to the run (source URL, query).
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import uuid4

import structlog

run_id_ctx: ContextVar[str] = ContextVar("run_id", default="no-run")

# Third-party loggers kept at warning level
QUIET_LIBRARIES = ("httpx", "httpcore", "openai", "chromadb")


def get_run_id() -> str:
    return run_id_ctx.get()


@contextmanager
def run_context(run_id: Optional[str] = None, **fields) -> Iterator[str]:
    """
    Scope log events to one indexing or search run.

    Args:
        run_id: Explicit id; a short random one is generated otherwise
        **fields: Extra key/values bound to every event of the run

    Yields:
        The run id. The previous run id is restored on exit.
    """
    rid = run_id or uuid4().hex[:8]
    token = run_id_ctx.set(rid)
    with structlog.contextvars.bound_contextvars(**fields):
        try:
            yield rid
        finally:
            run_id_ctx.reset(token)


def add_run_id(logger, method_name, event_dict):
    """Processor adding the current run id to every event."""
    event_dict["run_id"] = get_run_id()
    return event_dict


def setup_logging(debug: bool = False, json_logs: Optional[bool] = None) -> None:
    """
    Configure structlog for the library's events.

    JSON lines on stderr by default; a console renderer when debugging on a
    UTF-8 terminal, unless ``json_logs`` says otherwise.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    if json_logs is None:
        stderr_encoding = (getattr(sys.stderr, "encoding", None) or "").lower()
        json_logs = not (debug and "utf" in stderr_encoding)
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_run_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)
