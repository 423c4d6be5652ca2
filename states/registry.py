"""
Реестр стейтов приложения.

Содержит функцию регистрации всех стейтов в BotBuilder.
При добавлении нового стейта нужно:
1. Объявить его в states/app_states.py
2. Импортировать его здесь
3. Добавить в список states в функции register_all_states
"""

import logging

from core.builder import BotBuilder
from states.app_states import AppState
from states.common.idle import IdleState
from states.common.menu import MenuState
from states.common.welcome import WelcomeState

logger = logging.getLogger(__name__)


def create_builder() -> BotBuilder:
    """BotBuilder с закрытым набором стейтов AppState и всеми обработчиками."""
    builder = BotBuilder(states=get_available_states())
    register_all_states(builder)
    return builder


def register_all_states(builder: BotBuilder) -> None:
    """
    Регистрирует все стейты в BotBuilder.

    Args:
        builder: Экземпляр BotBuilder
    """
    states = [
        IdleState(),
        WelcomeState(),
        MenuState(),
    ]

    for state in states:
        state.register(builder)
        logger.debug(f"State handler registered: {state.get_display_name()}")

    logger.info(f"Registered {len(states)} states")


def get_available_states() -> list[str]:
    """
    Возвращает список всех объявленных стейтов.

    Задаёт закрытый набор стейтов в create_builder.
    """
    return [state.value for state in AppState]
