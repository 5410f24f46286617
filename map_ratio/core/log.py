import logging
import os

LOG_LEVEL_ENV = 'MAP_RATIO_LOG_LEVEL'


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s'))
    logger.addHandler(handler)
    # own handler already prints; keep records away from a host app's root handlers
    logger.propagate = False

    # WARNING for library use, INFO for the CLI; MAP_RATIO_LOG_LEVEL wins over both
    default_level = logging.INFO if name.endswith('__main__') else logging.WARNING
    level_name = os.getenv(LOG_LEVEL_ENV, logging.getLevelName(default_level))
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = default_level

    logger.setLevel(level)
    return logger
