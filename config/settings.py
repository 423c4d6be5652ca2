"""
Настройки бота: токены, режим транспорта, параметры движка.

Все значения читаются из переменных окружения. Политика движка
(лимит цепочки переходов, повторный вход в тот же стейт) настраивается
через feature flags — см. config/features.py и features.yaml.
"""

import logging
import os
from pathlib import Path

# ============= ТОКЕНЫ И ПОДКЛЮЧЕНИЯ =============

BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
DATABASE_URL = os.getenv("DATABASE_URL")

# ============= ТРАНСПОРТ =============

# "polling" или "webhook"
BOT_MODE = os.getenv("BOT_MODE", "polling")
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/webhook")
WEBAPP_HOST = os.getenv("WEBAPP_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

# ============= STATE MACHINE =============

# Стейт, в котором создаётся новый пользователь и в который сбрасывается сессия
INITIAL_STATE = os.getenv("INITIAL_STATE", "idle")

# Стейт, в который переводит команда /start
START_STATE = os.getenv("START_STATE", "welcome")

# Максимум on_enter за один цикл обработки сообщения
MAX_TRANSITION_CHAIN = 25

# Текст для пользователя, если обработчик упал
GENERIC_ERROR_TEXT = "⚠️ Something went wrong. Please try again."

# ============= ПУТИ =============

FEATURES_PATH = Path(__file__).parent / "features.yaml"

# ============= ЛОГИРОВАНИЕ =============

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер модуля"""
    return logging.getLogger(name)


def validate_env(mode: str = BOT_MODE) -> None:
    """Проверка обязательных переменных окружения

    Args:
        mode: Режим транспорта (по умолчанию BOT_MODE)

    Raises:
        ValueError: если не хватает переменной для выбранного режима
    """
    if not BOT_TOKEN:
        raise ValueError("TELEGRAM_BOT_TOKEN не установлен!")
    if mode not in ("polling", "webhook"):
        raise ValueError(f"BOT_MODE должен быть polling или webhook, получен {mode!r}")
    if mode == "webhook" and not WEBHOOK_URL:
        raise ValueError("WEBHOOK_URL обязателен при BOT_MODE=webhook")
