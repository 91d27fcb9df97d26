import logging
import os
import sys

ROOT_NAME = "image_converter"
LEVEL_ENV = "IMAGE_CONVERTER_LOG_LEVEL"
CATS_ENV = "IMAGE_CONVERTER_LOG_CATS"

_HANDLER_NAME = "image_converter.stderr"
_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class CategoryFilter(logging.Filter):
    """Pass records whose last dotted name part is one of `categories`.

    `image_converter.pipeline` has category "pipeline".
    """

    def __init__(self, categories: set[str]):
        super().__init__()
        self.categories = categories

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.rsplit(".", 1)[-1] in self.categories


def _env_level(default: int) -> int:
    raw = (os.getenv(LEVEL_ENV) or "").strip().lower()
    return _LEVELS.get(raw, default)


def _env_categories() -> set[str]:
    raw = os.getenv(CATS_ENV) or ""
    return {c.strip() for c in raw.split(",") if c.strip()}


def _stderr_handler(logger: logging.Logger) -> logging.Handler:
    for h in logger.handlers:
        if h.get_name() == _HANDLER_NAME:
            return h
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.set_name(_HANDLER_NAME)
    logger.addHandler(handler)
    return handler


def setup_logger(level: int = logging.INFO, name: str = ROOT_NAME) -> logging.Logger:
    """Configure the package logger and return it.

    Safe to call repeatedly: the env overrides are re-read each time and the
    single stderr handler is reconfigured in place.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_env_level(level))

    handler = _stderr_handler(logger)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    handler.filters.clear()
    categories = _env_categories()
    if categories:
        handler.addFilter(CategoryFilter(categories))

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = setup_logger()
    return base.getChild(name) if name else base
