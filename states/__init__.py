"""
Модуль стейтов State Machine.

Содержит:
- app_states.py: AppState — закрытый набор стейтов
- base.py: базовый класс BaseState
- common/: стейты приложения (idle, welcome, menu)
- registry.py: регистрация всех стейтов в BotBuilder
"""

from .app_states import AppState
from .base import BaseState

__all__ = ['AppState', 'BaseState']
