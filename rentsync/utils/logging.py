"""Structured logging for import runs: run/session context, stage timing and PII masking."""

import logging
import re
import time
import uuid
from contextvars import ContextVar
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional

from rentsync.utils.logging_config import LoggingConfig

_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
_session_id_var: ContextVar[Optional[str]] = ContextVar('import_session_id', default=None)

_EMAIL_PATTERN = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
_PHONE_PATTERN = re.compile(r'\+?\b\d[\d\s().-]{7,}\d\b')


def get_correlation_id() -> Optional[str]:
    """Run ID of the import currently executing, if any."""
    return _correlation_id_var.get()


def get_session_id() -> Optional[str]:
    return _session_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Tag every log line inside one import run with a shared `run_…` ID."""
    token = _correlation_id_var.set(correlation_id or f"run_{uuid.uuid4().hex[:12]}")
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)


@contextmanager
def session_context(session_id: str) -> Iterator[str]:
    """Tag every log line with the import session being processed."""
    token = _session_id_var.set(session_id)
    try:
        yield session_id
    finally:
        _session_id_var.reset(token)


def mask_phone_number(phone_number: Optional[str]) -> Optional[str]:
    """Mask a recipient phone number, keeping the last 4 digits."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or not phone_number:
        return phone_number

    digits = re.sub(r'\D', '', phone_number)
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


def sanitize_message_text(text: str, max_length: int = 500) -> Optional[str]:
    """Alert text as it may appear in logs; None when previews are switched off."""
    if not LoggingConfig.LOG_MESSAGE_CONTENT or not text:
        return None

    if len(text) > max_length:
        text = text[:max_length] + "..."

    if LoggingConfig.LOG_MASK_SENSITIVE:
        # Listing descriptions can carry broker contact details
        text = _EMAIL_PATTERN.sub('[REDACTED_EMAIL]', text)
        text = _PHONE_PATTERN.sub('[REDACTED_PHONE]', text)

    return text


class StructuredLogger:
    """Logger wrapper taking keyword fields, stamped with the current run and session."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _get_extra(self, **kwargs: Any) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}

        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id
        session_id = get_session_id()
        if session_id:
            extra["session_id"] = session_id

        extra.update(kwargs)
        return extra

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, extra=self._get_extra(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, extra=self._get_extra(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.warning(message, extra=self._get_extra(**kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.error(message, extra=self._get_extra(**kwargs), exc_info=exc_info)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any) -> Iterator[Dict[str, Any]]:
    """
    Time a pipeline stage.

    Yields a dict the stage can fill with outcome fields (record counts and
    the like); they are added to the completion line. Stages slower than
    LOG_SLOW_OPERATION_THRESHOLD_MS also log a warning.
    """
    log = logger or get_structured_logger(__name__)
    outcome: Dict[str, Any] = {}
    start_time = time.perf_counter()
    log.debug(f"Starting {operation_name}", operation=operation_name, **context)

    try:
        yield outcome
    finally:
        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log.info(
            f"Completed {operation_name}",
            operation=operation_name,
            processing_time_ms=elapsed_ms,
            **{**context, **outcome}
        )

        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            log.warning(
                f"Slow operation detected: {operation_name}",
                operation=operation_name,
                processing_time_ms=elapsed_ms,
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS,
                **context
            )


def timed(operation_name: str, outcome: Optional[Callable[[Any], Dict[str, Any]]] = None):
    """Decorator timing a synchronous stage; `outcome` maps its return value to log fields."""
    def decorator(func: Callable) -> Callable:
        log = get_structured_logger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            with log_timing(operation_name, logger=log) as fields:
                result = func(*args, **kwargs)
                if outcome is not None:
                    fields.update(outcome(result))
                return result

        return wrapper

    return decorator
