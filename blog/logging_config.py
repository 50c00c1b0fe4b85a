import logging

from blog.config import settings

LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(filename)s:%(lineno)d] %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a console handler to the ``blog`` logger hierarchy.

    Safe to call more than once (e.g. app reloads in tests); the handler
    is only added the first time.
    """
    logger = logging.getLogger("blog")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
