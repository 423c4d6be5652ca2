"""
Управление подключением к базе данных.

Пул соединений PostgreSQL через asyncpg.
"""

import asyncpg
from typing import Optional

from config import DATABASE_URL, get_logger

logger = get_logger(__name__)

# Глобальный пул соединений
_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Получить пул соединений (создать если не существует)"""
    global _pool
    if _pool is None:
        if not DATABASE_URL:
            raise ValueError("DATABASE_URL не установлен!")
        try:
            _pool = await asyncpg.create_pool(DATABASE_URL)
            logger.info("✅ Пул соединений создан")
        except Exception as e:
            logger.error(f"❌ Ошибка создания пула соединений: {e}")
            raise
    return _pool


async def close_pool():
    """Закрыть пул соединений"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("🔒 Пул соединений закрыт")


async def init_db() -> asyncpg.Pool:
    """Инициализация базы данных: пул + таблицы"""
    pool = await get_pool()

    from .models import create_tables
    await create_tables(pool)

    logger.info("✅ База данных инициализирована")
    return pool
