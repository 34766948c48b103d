"""Simple logger utility."""
import logging

from ..app.config import Config

logger = logging.getLogger("gelaboca")
if not logger.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)
    logger.setLevel(getattr(logging, Config.LOG_LEVEL, logging.INFO))

def get_logger():
    return logger
