from __future__ import annotations

import logging
from ledger_analytics.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    # Ensure configuring logging doesn't raise and attaches a StreamHandler
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_writes_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "run.log"
    configure_logging(log_file, level=logging.DEBUG)
    logging.getLogger("ledger_analytics.test").info("hello %s", "ledger")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "hello ledger" in log_file.read_text(encoding="utf-8")
    configure_logging(None)
