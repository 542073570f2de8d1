"""Approval — обработка кликов продавцов с at-most-one-winner семантикой.

- Process-local mutex по заказу (OrderLockTable)
- Read-before-write идемпотентность через record store
- Best-effort закрытие соседних офферов
"""

from .locks import OrderLockTable
from .state_machine import (
    ApprovalOutcome,
    ApprovalResult,
    ApprovalState,
    ApprovalStateMachine,
)

__all__ = [
    "ApprovalOutcome",
    "ApprovalResult",
    "ApprovalState",
    "ApprovalStateMachine",
    "OrderLockTable",
]
