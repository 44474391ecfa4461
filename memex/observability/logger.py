"""Structured logging with structlog.

Security: API keys and wallet secrets are never logged.  Besides masking
sensitive field names, string values are scrubbed of ``apikey=...``
query parameters, since upstream HTTP errors embed the full request URL.

JSON output in production, console rendering for the CLI.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path

import structlog


_CONFIGURED = False

_MASK = "***REDACTED***"

_SENSITIVE_FIELDS = frozenset({
    "apikey", "api_key", "basescan_api_key", "memex_api_key",
    "private_key", "mnemonic", "secret", "password",
})

_APIKEY_PARAM = re.compile(r"(api_?key=)[^&\s'\"]+", re.IGNORECASE)


def _scrub(value: str) -> str:
    return _APIKEY_PARAM.sub(r"\1" + _MASK, value)


def _redact_processor(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Mask sensitive fields and scrub API keys out of string values."""
    for key, value in list(event_dict.items()):
        if key.lower() in _SENSITIVE_FIELDS:
            event_dict[key] = _MASK
        elif isinstance(value, str) and "key=" in value.lower():
            event_dict[key] = _scrub(value)
    return event_dict


def _handlers(level: int, log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(path)))
    for h in handlers:
        h.setLevel(level)
    return handlers


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    log_file: str | None = None,
) -> None:
    """Route structlog through stdlib logging.  Only the first call takes effect."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _redact_processor,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if fmt == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in _handlers(log_level, log_file):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # httpx logs every request URL at INFO, api key included
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    _CONFIGURED = True


def bind_agent(name: str, wallet: str) -> None:
    """Attach the agent identity to every subsequent log line."""
    structlog.contextvars.bind_contextvars(agent=name, wallet=wallet[:10])


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog bound logger."""
    if not _CONFIGURED:
        configure_logging(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            fmt=os.environ.get("LOG_FORMAT", "console"),
        )
    return structlog.get_logger(name)
