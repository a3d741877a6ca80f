import json
import logging

import pytest

from mosdns.mlog import LogConfig, logger, new_logger, nop, set_level


def _close(built):
    for handler in built.handlers:
        handler.close()


def test_invalid_level_raises():
    with pytest.raises(ValueError):
        new_logger(LogConfig(level="verbose"))


def test_empty_level_means_info():
    built = new_logger(LogConfig())
    assert built.level == logging.INFO


def test_level_names():
    assert new_logger(LogConfig(level="debug")).level == logging.DEBUG
    assert new_logger(LogConfig(level="warn")).level == logging.WARNING
    assert new_logger(LogConfig(level="ERROR")).level == logging.ERROR


def test_production_writes_json(tmp_path):
    path = tmp_path / "log.json"
    built = new_logger(LogConfig(level="info", file=str(path), production=True))
    built.info("hello world")
    _close(built)
    entry = json.loads(path.read_text(encoding="utf-8").strip())
    assert entry["msg"] == "hello world"
    assert entry["level"] == "info"


def test_level_filters_messages(tmp_path):
    path = tmp_path / "log.txt"
    built = new_logger(LogConfig(level="warn", file=str(path)))
    built.info("dropped message")
    built.warning("kept message")
    _close(built)
    text = path.read_text(encoding="utf-8")
    assert "kept message" in text
    assert "dropped message" not in text


def test_unopenable_file_raises(tmp_path):
    with pytest.raises(OSError):
        new_logger(LogConfig(file=str(tmp_path / "missing" / "log.txt")))


def test_global_logger_and_set_level():
    assert logger() is logger()
    old = logger().level
    try:
        set_level("debug")
        assert logger().level == logging.DEBUG
    finally:
        logger().setLevel(old)


def test_set_level_rejects_unknown():
    with pytest.raises(ValueError):
        set_level("loud")


def test_nop_is_silent():
    assert nop().isEnabledFor(logging.CRITICAL) is False