"""Config — настройки процесса, имена таблиц/полей, logging."""

from .log_setup import configure_logging
from .settings import Settings, TableConfig

__all__ = [
    "Settings",
    "TableConfig",
    "configure_logging",
]
