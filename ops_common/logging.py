"""Logging setup shared by the CLI, the pwsh runners and the Graph client.

Records from stdlib loggers and structlog loggers go through one
``ProcessorFormatter`` so console and file output look the same. The Azure
SDK loggers are held at WARNING unless debug output is requested; their
INFO output dumps every HTTP request and response header.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import structlog

from ops_common.config.env import parse_bool_env

LEVEL_ENV = "OPS_LOG_LEVEL"
JSON_ENV = "OPS_LOG_JSON"
FILE_ENV = "OPS_LOG_FILE"

SDK_LOGGERS = ("azure", "azure.identity", "azure.core.pipeline.policies.http_logging_policy", "urllib3")


def _resolve_level(value: str | int | None, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    if value.strip().isdecimal():
        return int(value)
    return logging.getLevelNamesMapping().get(value.strip().upper(), logging.INFO)


def _timestamped_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(as_json: bool) -> structlog.types.Processor:
    if as_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def _bind_structlog() -> None:
    structlog.configure(
        processors=[
            *_timestamped_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | None = None,
    json: bool | None = None,
    force: bool = False,
) -> None:
    """Install the shared formatter on the root logger.

    Explicit arguments win over ``OPS_LOG_LEVEL``, ``OPS_LOG_JSON`` and
    ``OPS_LOG_FILE``. Without ``force`` an already configured root logger is
    left alone and only structlog is bound.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        _bind_structlog()
        return

    resolved_level = _resolve_level(level if level is not None else os.environ.get(LEVEL_ENV), debug)
    env_json = parse_bool_env(os.environ.get(JSON_ENV))
    as_json = bool(env_json) if json is None else json
    resolved_log_file = os.environ.get(FILE_ENV) if log_file is None else log_file

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_renderer(as_json),
        foreign_pre_chain=_timestamped_chain(),
    )

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream_handler]
    if resolved_log_file:
        handlers.append(_file_handler(resolved_log_file, formatter))

    if force:
        root_logger.handlers.clear()
    root_logger.setLevel(resolved_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    sdk_level = logging.DEBUG if debug else max(resolved_level, logging.WARNING)
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    _bind_structlog()
