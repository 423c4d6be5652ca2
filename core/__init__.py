"""
Ядро бота: State Machine.

Содержит:
- registry.py: HandlerRegistry — стейт → пара обработчиков (on_enter, on_response)
- builder.py: BotBuilder — fluent API регистрации обработчиков
- context.py: HandlerContext — send / get_data / set_data / transition для обработчиков
- machine.py: StateMachine — выполнение обработчиков и цепочек переходов
- storage.py: StateStorage — загрузка и сохранение сессий пользователей
- exceptions.py: ошибки движка
"""

from .builder import BotBuilder, StateBuilder
from .context import HandlerContext, StateData
from .exceptions import InvalidTransition, StateNotFound, StorageError, TransitionLoopError
from .machine import StateMachine
from .registry import HandlerRegistry, StateHandlers, state_name
from .storage import Session, StateStorage

__all__ = [
    # builder
    'BotBuilder',
    'StateBuilder',
    # registry
    'HandlerRegistry',
    'StateHandlers',
    'state_name',
    # context
    'HandlerContext',
    'StateData',
    # machine
    'StateMachine',
    # storage
    'Session',
    'StateStorage',
    # exceptions
    'InvalidTransition',
    'StateNotFound',
    'StorageError',
    'TransitionLoopError',
]
