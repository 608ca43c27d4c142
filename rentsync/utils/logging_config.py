"""Logging setup for the import handlers, driven by environment variables."""

import os
import logging
import sys
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "rentsync-backend"


class LoggingConfig:
    """Environment-driven logging switches."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    # Alert text previews in dispatcher logs
    LOG_MESSAGE_CONTENT = os.environ.get("LOG_MESSAGE_CONTENT", "true").lower() == "true"
    # Recipient phone numbers and listing contact details
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    # Client libraries that log every Supabase and Twilio round trip at INFO
    QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "supabase")

    _configured = False

    @classmethod
    def setup_logging(cls, force: bool = False) -> None:
        """
        Install a single stdout handler on the root logger.

        Every handler module calls this at import; only the first call (or a
        forced one) touches the handlers.
        """
        if cls._configured and not force:
            return

        level = getattr(logging, cls.LOG_LEVEL, logging.INFO)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(cls.build_formatter())

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(handler)
        root_logger.setLevel(level)

        for name in cls.QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        cls._configured = True

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT != "json":
            return logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')

        return jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(name)s %(message)s",
            timestamp=True,
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": SERVICE_NAME},
        )
