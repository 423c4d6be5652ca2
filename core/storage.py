"""
StateStorage — хранение и сверка сессий пользователей.

Единственный компонент, который читает и пишет долговременную копию
сессии. Движок и обработчики работают только с рабочей копией
(core.context.StateData) в рамках одного цикла.

- Сейчас: PostgreSQL через db.repository.PostgresUserRepository
- Для тестов и локального запуска: db.repository.MemoryUserRepository

Использование:
    from core.storage import StateStorage
    from db.repository import PostgresUserRepository

    storage = StateStorage(PostgresUserRepository())

    session, is_new = await storage.get_or_create_session(telegram_id, chat_id)
    ...
    await storage.save_session(session, new_state, store.snapshot())
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from core.exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Последняя сохранённая копия состояния пользователя."""

    telegram_id: int
    chat_id: int
    current_state: str
    state_data: dict = field(default_factory=dict)
    user_id: Optional[int] = None


class StateStorage:
    """
    Сверка рабочей копии с БД.

    Запись в БД делается одним обновлением {current_state, state_data}
    и только если что-то изменилось.
    """

    def __init__(self, db_repo, initial_state: str = "idle"):
        """
        Args:
            db_repo: Репозиторий пользователей (методы get_user_by_telegram_id,
                     create_or_update_user, update_user_state)
            initial_state: Стейт нового пользователя и стейт после сброса
        """
        self.db = db_repo
        self.initial_state = initial_state

    @staticmethod
    def _parse_state_data(raw, telegram_id: int) -> dict:
        """Десериализация state data из текста БД."""
        if not raw:
            return {}
        if isinstance(raw, dict):
            return raw
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Broken state_data for {telegram_id}, using empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"state_data for {telegram_id} is not an object, using empty")
            return {}
        return data

    @staticmethod
    def _dump_state_data(data: dict) -> str:
        return json.dumps(data, ensure_ascii=False, sort_keys=True)

    async def load_session(self, telegram_id: int) -> Optional[Session]:
        """
        Загружает сессию пользователя.

        Returns:
            Session или None если пользователь не найден

        Raises:
            StorageError: если БД недоступна
        """
        try:
            user = await self.db.get_user_by_telegram_id(telegram_id)
        except Exception as e:
            logger.error(f"Failed to load state for {telegram_id}: {e}")
            raise StorageError(f"Failed to load state for {telegram_id}") from e

        if user is None:
            return None

        return Session(
            telegram_id=telegram_id,
            chat_id=user.chat_id,
            current_state=user.current_state or self.initial_state,
            state_data=self._parse_state_data(user.state_data, telegram_id),
            user_id=user.id,
        )

    async def get_or_create_session(self, telegram_id: int, chat_id: int) -> tuple[Session, bool]:
        """
        Загружает сессию или создаёт нового пользователя.

        Args:
            telegram_id: Telegram ID пользователя
            chat_id: ID чата (обновляется, если пользователь пишет из другого чата)

        Returns:
            (session, is_new)
        """
        session = await self.load_session(telegram_id)

        if session is not None:
            if session.chat_id != chat_id:
                await self._write_user(telegram_id, chat_id)
                session.chat_id = chat_id
            return session, False

        user = await self._write_user(
            telegram_id,
            chat_id,
            current_state=self.initial_state,
            state_data=self._dump_state_data({}),
        )
        logger.info(f"New session for {telegram_id} in state {self.initial_state}")

        return Session(
            telegram_id=telegram_id,
            chat_id=chat_id,
            current_state=self.initial_state,
            state_data={},
            user_id=getattr(user, 'id', None),
        ), True

    async def _write_user(self, telegram_id: int, chat_id: int, **fields):
        try:
            return await self.db.create_or_update_user(telegram_id, chat_id, **fields)
        except Exception as e:
            logger.error(f"Failed to save user {telegram_id}: {e}")
            raise StorageError(f"Failed to save user {telegram_id}") from e

    async def save_session(self, session: Session, state: str, state_data: dict) -> bool:
        """
        Сохраняет стейт и state data, если они изменились.

        Сравнение по значению, не по ссылке. После записи session
        обновляется и становится новой "последней сохранённой" копией.

        Args:
            session: Последняя сохранённая копия
            state: Текущий стейт после цикла (или шага цепочки)
            state_data: Рабочая копия state data

        Returns:
            True если была запись в БД
        """
        if state == session.current_state and state_data == session.state_data:
            logger.debug(f"State unchanged for {session.telegram_id}, skip write")
            return False

        try:
            raw = self._dump_state_data(state_data)
            await self.db.update_user_state(session.telegram_id, state, raw)
        except Exception as e:
            logger.error(f"Failed to save state for {session.telegram_id}: {e}")
            raise StorageError(f"Failed to save state for {session.telegram_id}") from e

        logger.debug(f"State saved for user {session.telegram_id}: {state}")
        session.current_state = state
        session.state_data = copy.deepcopy(state_data)
        return True

    async def reset_session(self, telegram_id: int) -> bool:
        """
        Сбрасывает пользователя в начальный стейт с пустыми данными.

        Запись пользователя не удаляется, ID сохраняется.
        Неизвестный пользователь — ничего не делаем: при первом сообщении
        он и так будет создан в начальном стейте.

        Returns:
            True если сессия была сброшена
        """
        if await self.load_session(telegram_id) is None:
            logger.info(f"Reset for unknown user {telegram_id}, nothing to do")
            return False

        try:
            await self.db.update_user_state(
                telegram_id, self.initial_state, self._dump_state_data({})
            )
        except Exception as e:
            logger.error(f"Failed to reset state for {telegram_id}: {e}")
            raise StorageError(f"Failed to reset state for {telegram_id}") from e

        logger.info(f"Session reset for {telegram_id} -> {self.initial_state}")
        return True
