"""
Функции для работы с базой данных.

Модули:
- users.py: работа с таблицей users
"""

from .users import (
    get_user_by_telegram_id,
    create_or_update_user,
    update_user_state,
)

__all__ = [
    'get_user_by_telegram_id',
    'create_or_update_user',
    'update_user_state',
]
