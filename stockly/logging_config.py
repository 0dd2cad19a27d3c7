import logging

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _level() -> int:
    return getattr(logging, str(settings.LOG_LEVEL or "INFO").upper(), logging.INFO)


def configure_logging() -> None:
    """Configure the root logger from ``LOG_LEVEL`` and ``LOG_FILE``.

    Safe to call again after settings change: file handlers are replaced,
    the console handler is reused.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(_level())

    if not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root_logger.handlers
    ):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)

    file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
    for handler in file_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
