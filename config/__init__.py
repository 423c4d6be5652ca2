"""
Модуль конфигурации бота.

Содержит:
- settings.py: токены, режим транспорта, константы движка, логирование
- features.py: feature flags (политика движка, выбор хранилища)
"""

from .settings import (
    # Токены
    BOT_TOKEN,
    DATABASE_URL,
    validate_env,

    # Транспорт
    BOT_MODE,
    WEBHOOK_URL,
    WEBHOOK_PATH,
    WEBAPP_HOST,
    PORT,

    # State Machine
    INITIAL_STATE,
    START_STATE,
    MAX_TRANSITION_CHAIN,
    GENERIC_ERROR_TEXT,

    # Пути
    FEATURES_PATH,

    # Логирование
    get_logger,
)

__all__ = [
    'BOT_TOKEN',
    'DATABASE_URL',
    'validate_env',
    'BOT_MODE',
    'WEBHOOK_URL',
    'WEBHOOK_PATH',
    'WEBAPP_HOST',
    'PORT',
    'INITIAL_STATE',
    'START_STATE',
    'MAX_TRANSITION_CHAIN',
    'GENERIC_ERROR_TEXT',
    'FEATURES_PATH',
    'get_logger',
]
