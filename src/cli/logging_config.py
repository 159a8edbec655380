"""structlog setup for the CLI and the web service."""

import logging
import re
import sys
from pathlib import Path

import structlog

# (pattern, replacement) applied to every string value of an event
REDACTIONS = [
    (re.compile(r"(sk-ant-[a-zA-Z0-9_-]{10})[a-zA-Z0-9_-]*"), r"\1...REDACTED"),
    (re.compile(r"(sk-[a-zA-Z0-9_-]{6})[a-zA-Z0-9_-]{20,}"), r"\1...REDACTED"),
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9_.-]{20,}"), r"\1REDACTED"),
    (re.compile(r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)[a-zA-Z0-9_-]{10,}"), r"\1REDACTED"),
    # contact e-mail addresses end up in artifact metadata and prompts
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "REDACTED@email"),
]


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    for key, value in event_dict.items():
        if isinstance(value, str):
            for pattern, replacement in REDACTIONS:
                value = pattern.sub(replacement, value)
            event_dict[key] = value
    return event_dict


def _processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _redact_sensitive,
    ]


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging(json_mode: bool = False, level: str = "INFO", log_file: Path | None = None) -> None:
    """Route structlog through stdlib logging.

    Args:
        json_mode: JSON lines on stderr (web service) instead of the console renderer (CLI).
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_file: Also append JSON lines to this file.
    """
    structlog.configure(
        processors=[*_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stderr = logging.StreamHandler(sys.stderr)
    stderr.setFormatter(
        _formatter(structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer())
    )
    handlers: list[logging.Handler] = [stderr]

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
