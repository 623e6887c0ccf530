"""Loguru sinks for verification runs.

Every plumbline module logs through ``logger.bind(component=...)``; nothing
is emitted until ``setup_logging`` enables the package. Records from other
libraries never reach these sinks.

Example:
    handler_ids = setup_logging(LogConfig(level="DEBUG", file="plumbline.log"))
    try:
        check_steps().run(spec, reader)
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Literal, get_args

from loguru import logger

logger.disable("plumbline")

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

LEVELS: tuple[str, ...] = get_args(LogLevel.__value__)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} | {extra[component]} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where verification logs go.

    ``level`` filters the console only; the file sink records DEBUG and up so
    a failed run keeps every attempt of every step.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10

    def __post_init__(self) -> None:
        if self.level not in LEVELS:
            raise ValueError(f"level must be one of {', '.join(LEVELS)}, got {self.level!r}")


def _plumbline_only(record: dict) -> bool:
    if not (record["name"] or "").startswith("plumbline"):
        return False
    record["extra"].setdefault("component", "-")
    return True


def setup_logging(config: LogConfig) -> list[int]:
    """Enable plumbline logging; returns the handler IDs to pass to ``teardown_logging``."""
    logger.enable("plumbline")
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level=config.level,
                format=CONSOLE_FORMAT,
                colorize=True,
                filter=_plumbline_only,
            )
        )

    if config.file:
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                format=FILE_FORMAT,
                rotation=config.rotation,
                retention=config.retention,
                diagnose=False,  # tracebacks would print secret values
                enqueue=True,
                filter=_plumbline_only,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("plumbline")
