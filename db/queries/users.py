"""
Запросы для работы с пользователями (таблица users).
"""

from typing import Optional

from config import get_logger
from db.connection import get_pool
from db.models import UserRecord

logger = get_logger(__name__)


def _row_to_record(row) -> UserRecord:
    """Преобразовать строку БД в UserRecord"""
    return UserRecord(
        id=row['id'],
        telegram_id=row['telegram_id'],
        chat_id=row['chat_id'],
        current_state=row['current_state'],
        state_data=row['state_data'] or '{}',
    )


async def get_user_by_telegram_id(telegram_id: int) -> Optional[UserRecord]:
    """Получить пользователя по Telegram ID"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            'SELECT * FROM users WHERE telegram_id = $1', telegram_id
        )
        return _row_to_record(row) if row else None


async def create_or_update_user(
    telegram_id: int,
    chat_id: int,
    current_state: Optional[str] = None,
    state_data: Optional[str] = None,
) -> UserRecord:
    """Создать пользователя или обновить chat_id / стейт существующего

    Args:
        telegram_id: Telegram ID пользователя
        chat_id: ID чата
        current_state: Стейт (для нового пользователя по умолчанию 'idle')
        state_data: Сериализованный JSON state data
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            INSERT INTO users (telegram_id, chat_id, current_state, state_data)
            VALUES ($1, $2, COALESCE($3, 'idle'), COALESCE($4, '{}'))
            ON CONFLICT (telegram_id) DO UPDATE SET
                chat_id = EXCLUDED.chat_id,
                current_state = COALESCE($3, users.current_state),
                state_data = COALESCE($4, users.state_data),
                updated_at = NOW()
            RETURNING *
        ''', telegram_id, chat_id, current_state, state_data)
        return _row_to_record(row)


async def update_user_state(telegram_id: int, current_state: str, state_data: Optional[str] = None):
    """Обновить стейт пользователя (и state data, если передан)

    Raises:
        LookupError: если пользователя нет
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        if state_data is None:
            result = await conn.execute(
                'UPDATE users SET current_state = $1, updated_at = NOW() WHERE telegram_id = $2',
                current_state, telegram_id
            )
        else:
            result = await conn.execute(
                'UPDATE users SET current_state = $1, state_data = $2, updated_at = NOW() '
                'WHERE telegram_id = $3',
                current_state, state_data, telegram_id
            )

    # asyncpg возвращает статус вида "UPDATE 1"
    if result.endswith(" 0"):
        raise LookupError(f"User with telegram_id {telegram_id} not found")
