"""
Репозитории пользователей для StateStorage.

- PostgresUserRepository: обёртка над db.queries.users
- MemoryUserRepository: хранение в памяти процесса (локальный запуск, тесты)

Оба реализуют один интерфейс:
    get_user_by_telegram_id(telegram_id) -> UserRecord | None
    create_or_update_user(telegram_id, chat_id, current_state=None, state_data=None) -> UserRecord
    update_user_state(telegram_id, current_state, state_data=None) -> None
"""

from dataclasses import replace
from typing import Optional

from db.models import UserRecord
from db.queries import users


class PostgresUserRepository:
    """Пользователи в PostgreSQL (таблица users)."""

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[UserRecord]:
        return await users.get_user_by_telegram_id(telegram_id)

    async def create_or_update_user(
        self,
        telegram_id: int,
        chat_id: int,
        current_state: Optional[str] = None,
        state_data: Optional[str] = None,
    ) -> UserRecord:
        return await users.create_or_update_user(telegram_id, chat_id, current_state, state_data)

    async def update_user_state(
        self, telegram_id: int, current_state: str, state_data: Optional[str] = None
    ) -> None:
        await users.update_user_state(telegram_id, current_state, state_data)


class MemoryUserRepository:
    """
    Пользователи в памяти процесса.

    Данные теряются при перезапуске. Счётчик writes считает все записи
    (create_or_update_user и update_user_state).
    """

    def __init__(self):
        self.users: dict[int, UserRecord] = {}
        self.writes = 0
        self._next_id = 1

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[UserRecord]:
        user = self.users.get(telegram_id)
        return replace(user) if user else None

    async def create_or_update_user(
        self,
        telegram_id: int,
        chat_id: int,
        current_state: Optional[str] = None,
        state_data: Optional[str] = None,
    ) -> UserRecord:
        self.writes += 1
        user = self.users.get(telegram_id)

        if user is None:
            user = UserRecord(
                id=self._next_id,
                telegram_id=telegram_id,
                chat_id=chat_id,
                current_state=current_state or "idle",
                state_data=state_data or "{}",
            )
            self._next_id += 1
        else:
            user.chat_id = chat_id
            if current_state is not None:
                user.current_state = current_state
            if state_data is not None:
                user.state_data = state_data

        self.users[telegram_id] = user
        return replace(user)

    async def update_user_state(
        self, telegram_id: int, current_state: str, state_data: Optional[str] = None
    ) -> None:
        user = self.users.get(telegram_id)
        if user is None:
            raise LookupError(f"User with telegram_id {telegram_id} not found")

        self.writes += 1
        user.current_state = current_state
        if state_data is not None:
            user.state_data = state_data
