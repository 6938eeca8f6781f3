"""Tests for archviz.logging."""

from __future__ import annotations

import io
from pathlib import Path

from archviz.logging import configure_logging, get_logger


def test_console_lines_name_the_component() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    get_logger("quota").info("Rejected request from %s", "10.0.0.1")
    get_logger().warning("top level")

    assert stream.getvalue().splitlines() == [
        "[archviz] INFO quota: Rejected request from 10.0.0.1",
        "[archviz] WARNING top level",
    ]


def test_debug_only_when_verbose() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)
    get_logger("llm").debug("hidden")
    assert stream.getvalue() == ""

    configure_logging(verbose=True, stream=stream)
    get_logger("llm").debug("Calling o4-mini")
    assert stream.getvalue() == "[archviz] DEBUG llm: Calling o4-mini\n"


def test_reconfiguring_does_not_duplicate_output(tmp_path: Path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "archviz.log"
    configure_logging(stream=stream)
    logger = configure_logging(stream=stream, log_file=log_file)

    get_logger("orchestrator").info("Running stage explanation")

    assert len(logger.handlers) == 2
    assert stream.getvalue().count("Running stage explanation") == 1
    assert "INFO archviz.orchestrator: Running stage explanation" in log_file.read_text(
        encoding="utf-8"
    )
