import sys

from loguru import logger

from umove_fleet.src.config.settings import SimulationSettings


def setup_logging(level: str = SimulationSettings.LOG_LEVEL):
    logger.remove()

    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level}</level> | "
        "<cyan>{name}:{function}:{line}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        colorize=True,
        format=fmt,
        level=level.upper(),
    )

    logger.debug(f"Logging initialized for umove_fleet (level={level.upper()})")
    return logger
