"""Order Lock Table — process-local mutex по заказам

Набор заказов, клик по которым сейчас обрабатывается. Процесс однопоточный
(asyncio), поэтому проверка+добавление в try_acquire атомарны между await.

Ограничения:
- Только внутри одного процесса. Между инстансами сервиса защищает лишь
  read-before-write проверка подтверждения в record store.
- Record store остаётся источником истины; таблица не хранит результатов.
"""

from contextlib import contextmanager
from typing import Iterator


class OrderLockTable:
    """Таблица блокировок заказов"""

    def __init__(self) -> None:
        self._processing: set[str] = set()

    def try_acquire(self, order_record_id: str) -> bool:
        """Захват без ожидания: False, если заказ уже обрабатывается"""
        if order_record_id in self._processing:
            return False
        self._processing.add(order_record_id)
        return True

    def release(self, order_record_id: str) -> None:
        self._processing.discard(order_record_id)

    def is_locked(self, order_record_id: str) -> bool:
        return order_record_id in self._processing

    def __len__(self) -> int:
        return len(self._processing)

    @contextmanager
    def hold(self, order_record_id: str) -> Iterator[bool]:
        """
        Захват на время блока с гарантированным освобождением.

        Yields:
            True если блокировка захвачена; при False блок не должен менять
            состояние заказа (и освобождать чужую блокировку не будет)

        Usage:
            with locks.hold(order_id) as acquired:
                if not acquired:
                    ...  # уже обрабатывается
        """
        acquired = self.try_acquire(order_record_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(order_record_id)
