import logging

from .config import CONFIG


def get_stridegrad_logger():
    logger = logging.getLogger("stridegrad")
    if not logger.hasHandlers():
        handler = logging.StreamHandler()
        formatter = logging.Formatter('[%(asctime)s][%(levelname)s][%(name)s] %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    level = getattr(logging, CONFIG.log_level, logging.WARNING)
    logger.setLevel(level)
    return logger
