"""Tests for loguru sink configuration."""

from loguru import logger

from xdportal.utils import logging as xdlogging


def test_file_sink_created_once(tmp_path):
    log_file = tmp_path / "logs" / "xdportal.log"
    try:
        assert xdlogging.configure_logging("INFO", log_file) == log_file
        assert log_file.parent.is_dir()
        sinks = dict(xdlogging._SINK_IDS)
        assert xdlogging.configure_logging("DEBUG", log_file) == log_file
        assert xdlogging._SINK_IDS[str(log_file)] == sinks[str(log_file)]

        logger.debug("written to file")
        logger.complete()
    finally:
        logger.remove()
        xdlogging._SINK_IDS.clear()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_no_file_sink_by_default():
    try:
        assert xdlogging.configure_logging() is None
        assert set(xdlogging._SINK_IDS) == {"stderr"}
    finally:
        logger.remove()
        xdlogging._SINK_IDS.clear()
