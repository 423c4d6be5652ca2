"""
HandlerContext — то, что видит код обработчика.

Один цикл обработки сообщения = одно хранилище StateData и
последовательность короткоживущих HandlerContext (по одному на шаг
перехода). Все контексты цикла делят одно и то же хранилище, поэтому
данные, записанные в on_response, видны в on_enter следующих стейтов.
"""

import copy
import logging
from typing import Any, Awaitable, Callable, Optional

from core.registry import StateName, state_name

logger = logging.getLogger(__name__)

# (chat_id, text) -> результат транспорта
Sender = Callable[[int, str], Awaitable[Any]]


class StateData:
    """
    Рабочая копия state data на один цикл обработки.

    Хранит снимок последнего сохранённого значения, чтобы
    StateStorage мог понять, нужна ли запись в БД.
    """

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict = copy.deepcopy(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def snapshot(self) -> dict:
        """Глубокая копия текущего содержимого."""
        return copy.deepcopy(self._data)

    def __repr__(self) -> str:
        return f"<StateData: {sorted(self._data)}>"


class HandlerContext:
    """
    Контекст одного шага перехода.

    Атрибуты:
        user_id: Внутренний ID пользователя в БД
        telegram_id: Telegram ID пользователя
        chat_id: ID чата для ответа
        current_state: Стейт, обработчик которого сейчас выполняется
    """

    def __init__(
        self,
        user_id: Optional[int],
        telegram_id: int,
        chat_id: int,
        current_state: str,
        store: StateData,
        sender: Sender,
    ):
        self.user_id = user_id
        self.telegram_id = telegram_id
        self.chat_id = chat_id
        self.current_state = current_state
        self._store = store
        self._sender = sender
        self.requested_state: Optional[str] = None

    async def send(self, text: str) -> bool:
        """
        Отправляет сообщение пользователю.

        Ошибка транспорта логируется и не прерывает обработку.

        Returns:
            True если сообщение отправлено
        """
        try:
            await self._sender(self.chat_id, text)
            return True
        except Exception as e:
            logger.error(f"Failed to send message to {self.chat_id} in {self.current_state}: {e}")
            return False

    def get_data(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set_data(self, key: str, value: Any) -> None:
        self._store.set(key, value)

    def clear_data(self) -> None:
        self._store.clear()

    @property
    def data(self) -> dict:
        """Копия всех данных стейта (для чтения)."""
        return self._store.snapshot()

    async def transition(self, to_state: StateName) -> None:
        """
        Запрашивает переход в другой стейт.

        Переход выполняется движком после возврата из обработчика, по тем
        же правилам, что и возвращённый стейт. Если обработчик сам вернёт
        стейт, приоритет у возвращённого значения.
        """
        self.requested_state = state_name(to_state)

    def step(self, state: str) -> "HandlerContext":
        """Новый контекст для следующего шага цепочки с тем же хранилищем."""
        return HandlerContext(
            user_id=self.user_id,
            telegram_id=self.telegram_id,
            chat_id=self.chat_id,
            current_state=state,
            store=self._store,
            sender=self._sender,
        )

    def __repr__(self) -> str:
        return f"<HandlerContext: {self.telegram_id} @ {self.current_state}>"
