"""
Logging setup для сервиса.

Один формат для всего процесса; болтливые HTTP библиотеки понижены до WARNING.
"""

import logging
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(level: str = "INFO") -> None:
    """
    Настройка root logger.

    Args:
        level: уровень логирования ("DEBUG", "INFO", ...)
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
