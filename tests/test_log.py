"""Tests for site_crawler.log."""

import logging

import structlog

from site_crawler.log import configure_logging


def test_events_rendered_on_stderr(capsys):
    configure_logging()

    structlog.get_logger("site_crawler.test").info("seed_started", path="/docs")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "seed_started" in captured.err
    assert "path=/docs" in captured.err


def test_level_filters_lower_events(capsys):
    configure_logging(logging.WARNING)

    logger = structlog.get_logger("site_crawler.test")
    logger.info("page_started")
    logger.error("seed_failed")

    err = capsys.readouterr().err
    assert "page_started" not in err
    assert "seed_failed" in err
