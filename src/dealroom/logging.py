"""
Structured logging for the deal room core.

structlog is configured once on import: JSON lines when DEALROOM_LOG_JSON is
set, coloured console output otherwise. Request-scoped IDs (trace, acting
identity, deal, negotiation) live in context variables and are stamped onto
every event by add_context_info. Credentials passed through auth flows are
masked by redact_secrets before rendering.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(name, default=None)
    for name in ('trace_id', 'identity_id', 'deal_id', 'negotiation_id')
}

SECRET_KEYS = frozenset({'password', 'token', 'authorization', 'api_token'})
REDACTED = '***'


def get_trace_id() -> str | None:
    return _CONTEXT['trace_id'].get()


def get_identity_id() -> str | None:
    """Acting identity for the current request or task."""
    return _CONTEXT['identity_id'].get()


def get_deal_id() -> str | None:
    return _CONTEXT['deal_id'].get()


def get_negotiation_id() -> str | None:
    return _CONTEXT['negotiation_id'].get()


def add_context_info(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that copies the set context IDs onto the event."""
    for name, var in _CONTEXT.items():
        value = var.get()
        if value:
            event_dict.setdefault(name, value)
    return event_dict


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that masks credential-bearing keys."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the process.

    Args:
        json_output: Render JSON lines instead of the development console format
        log_level: Override for config.LOG_LEVEL
    """
    level_num = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level_num)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_info,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def logging_context(**ids: str | None) -> Generator[None, None, None]:
    """
    Set request-scoped IDs for the duration of a block.

    Accepts trace_id, identity_id, deal_id and negotiation_id. None values
    leave the surrounding value in place. Previous values are restored on
    exit, including when the block raises.

    Usage:
        with logging_context(identity_id="uid_1", deal_id="deal_9"):
            logger.info("negotiation.submitting")
    """
    unknown = set(ids) - set(_CONTEXT)
    if unknown:
        raise TypeError(f'Unknown logging context keys: {sorted(unknown)}')

    tokens: list[tuple[ContextVar[str | None], Token]] = [
        (_CONTEXT[name], _CONTEXT[name].set(value))
        for name, value in ids.items()
        if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


configure_logging(json_output=config.LOG_JSON)
