"""
Модели базы данных (SQL схемы).

Содержит CREATE TABLE для пользователей и UserRecord — строку таблицы
в том виде, в каком её видит StateStorage.
"""

from dataclasses import dataclass
from typing import Optional

import asyncpg

from config import get_logger

logger = get_logger(__name__)


@dataclass
class UserRecord:
    """
    Пользователь бота.

    state_data хранится сериализованным JSON-текстом; разбор делает
    core.storage.StateStorage.
    """

    id: Optional[int]
    telegram_id: int
    chat_id: int
    current_state: str
    state_data: str = "{}"


async def create_tables(pool: asyncpg.Pool):
    """Создание таблиц"""
    async with pool.acquire() as conn:
        # ═══════════════════════════════════════════════════════════
        # ПОЛЬЗОВАТЕЛИ И ИХ СОСТОЯНИЕ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                telegram_id BIGINT UNIQUE NOT NULL,
                chat_id BIGINT NOT NULL,

                -- State Machine
                current_state TEXT NOT NULL DEFAULT 'idle',
                state_data TEXT NOT NULL DEFAULT '{}',

                -- Временные метки
                created_at TIMESTAMP DEFAULT NOW(),
                updated_at TIMESTAMP DEFAULT NOW()
            )
        ''')

        await conn.execute('''
            CREATE INDEX IF NOT EXISTS idx_users_state
            ON users(current_state)
        ''')

    logger.info("✅ Все таблицы созданы/обновлены")
