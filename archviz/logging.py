"""Logging utilities for archviz commands and the service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

_LOGGER_NAME = "archviz"


class ComponentFormatter(logging.Formatter):
    """Prefix console records with the component that emitted them.

    ``archviz.orchestrator`` renders as ``[archviz] INFO orchestrator: ...`` so
    stage, quota and model messages can be told apart in service output.
    """

    def __init__(self) -> None:
        super().__init__("[archviz] %(levelname)s %(component)s%(message)s")

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{_LOGGER_NAME}."
        component = record.name[len(prefix) :] if record.name.startswith(prefix) else ""
        record.component = f"{component}: " if component else ""
        return super().format(record)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the archviz hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install console output (stderr unless ``stream`` is given) and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(ComponentFormatter())
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["ComponentFormatter", "configure_logging", "get_logger"]
