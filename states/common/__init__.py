"""
Стейты приложения (common).

Содержит:
- idle.py: начальный стейт нового пользователя
- welcome.py: приветствие, запрос имени
- menu.py: главное меню
"""

from .idle import IdleState
from .welcome import WelcomeState
from .menu import MenuState

__all__ = ['IdleState', 'WelcomeState', 'MenuState']
