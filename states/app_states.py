"""
Все стейты приложения.

Закрытый набор: BotBuilder(states=AppState) не даст зарегистрировать
обработчик для необъявленного стейта, а движок не даст обработчику
вернуть необъявленный стейт.

Добавляя стейт:
1. Добавьте его сюда
2. Создайте файл стейта в states/common/
3. Зарегистрируйте его в states/registry.py
"""

from enum import Enum


class AppState(str, Enum):
    IDLE = "idle"
    WELCOME = "welcome"
    MENU = "menu"
