"""Finalization — валидация и коммит внешней сделки."""

from .pipeline import DealFinalizer, FinalizationResult
from .snapshot import DealSnapshot

__all__ = [
    "DealFinalizer",
    "FinalizationResult",
    "DealSnapshot",
]
