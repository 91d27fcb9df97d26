import logging

import pytest

from image_converter import logger as ic_logger


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv(ic_logger.LEVEL_ENV, raising=False)
    monkeypatch.delenv(ic_logger.CATS_ENV, raising=False)
    yield monkeypatch
    monkeypatch.delenv(ic_logger.LEVEL_ENV, raising=False)
    monkeypatch.delenv(ic_logger.CATS_ENV, raising=False)
    ic_logger.setup_logger()


def _stderr_handlers(base: logging.Logger) -> list[logging.Handler]:
    return [h for h in base.handlers if h.get_name() == "image_converter.stderr"]


def test_setup_logger_keeps_a_single_handler(clean_env):
    base = ic_logger.setup_logger(level=logging.DEBUG)
    ic_logger.setup_logger(level=logging.DEBUG)

    assert len(_stderr_handlers(base)) == 1
    assert base.propagate is False
    assert base.level == logging.DEBUG


def test_env_level_override(clean_env):
    clean_env.setenv(ic_logger.LEVEL_ENV, "Error")

    assert ic_logger.setup_logger(level=logging.DEBUG).level == logging.ERROR


def test_unknown_env_level_falls_back_to_argument(clean_env):
    clean_env.setenv(ic_logger.LEVEL_ENV, "loud")

    assert ic_logger.setup_logger(level=logging.WARNING).level == logging.WARNING


def test_category_filter(clean_env):
    clean_env.setenv(ic_logger.CATS_ENV, "pipeline, encoder")
    (handler,) = _stderr_handlers(ic_logger.setup_logger())

    def record(name: str) -> logging.LogRecord:
        return logging.LogRecord(name, logging.INFO, __file__, 1, "msg", None, None)

    assert handler.filter(record("image_converter.pipeline"))
    assert handler.filter(record("image_converter.encoder"))
    assert not handler.filter(record("image_converter.watermark"))


def test_get_logger_returns_child():
    assert ic_logger.get_logger("pipeline").name == "image_converter.pipeline"
    assert ic_logger.get_logger().name == "image_converter"
