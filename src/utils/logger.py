import logging
import os

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(os.environ.get("SMARTBURGER_LOG_LEVEL", "INFO").upper())
        handler = logging.StreamHandler()
        fmt = logging.Formatter(LOG_FORMAT)
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger
