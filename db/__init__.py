"""
Модуль работы с базой данных.

Содержит:
- connection.py: пул соединений PostgreSQL
- models.py: таблица users и UserRecord
- queries/: функции для работы с данными
    - users.py: get_user_by_telegram_id, create_or_update_user, update_user_state
- repository.py: репозитории для StateStorage (PostgreSQL и in-memory)
"""

from .connection import (
    get_pool,
    close_pool,
    init_db,
)

from .models import UserRecord, create_tables
from .repository import PostgresUserRepository, MemoryUserRepository

__all__ = [
    'get_pool',
    'close_pool',
    'init_db',
    'UserRecord',
    'create_tables',
    'PostgresUserRepository',
    'MemoryUserRepository',
]
