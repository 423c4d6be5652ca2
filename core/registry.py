"""
HandlerRegistry — реестр обработчиков стейтов.

Для каждого стейта хранится не более одной пары обработчиков:
- on_enter(ctx) — вызывается при входе в стейт
- on_response(ctx, text) — вызывается на входящее сообщение в этом стейте

Оба обработчика возвращают имя следующего стейта или None.
Слоты независимы: регистрация on_enter не затирает on_response и наоборот.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from core.exceptions import StateNotFound

logger = logging.getLogger(__name__)

# Стейт — непрозрачная строка. Члены str-Enum приводятся к их value.
StateName = Union[str, Enum]

EnterHandler = Callable[[Any], Awaitable[Optional[StateName]]]
ResponseHandler = Callable[[Any, str], Awaitable[Optional[StateName]]]


def state_name(state: StateName) -> str:
    """Приводит идентификатор стейта к строке."""
    if isinstance(state, Enum):
        return str(state.value)
    if not isinstance(state, str):
        raise TypeError(f"State must be str or Enum, got {state!r}")
    return state


@dataclass
class StateHandlers:
    """Пара обработчиков одного стейта."""

    on_enter: Optional[EnterHandler] = None
    on_response: Optional[ResponseHandler] = None


class HandlerRegistry:
    """
    Отображение "стейт → пара обработчиков".

    Если задан states, реестр закрыт: регистрировать можно только
    перечисленные стейты.
    """

    def __init__(self, states: Optional[Iterable[StateName]] = None):
        self._handlers: dict[str, StateHandlers] = {}
        self.allowed: Optional[frozenset[str]] = (
            frozenset(state_name(s) for s in states) if states is not None else None
        )

    def is_known(self, state: StateName) -> bool:
        """Допустим ли стейт (для открытого реестра — любой)."""
        return self.allowed is None or state_name(state) in self.allowed

    def _slot(self, state: StateName) -> StateHandlers:
        name = state_name(state)
        if not self.is_known(name):
            raise StateNotFound(f"State not declared: {name}")
        return self._handlers.setdefault(name, StateHandlers())

    def set_on_enter(self, state: StateName, handler: EnterHandler) -> None:
        slot = self._slot(state)
        if slot.on_enter is not None:
            logger.debug(f"on_enter for {state_name(state)} overwritten")
        slot.on_enter = handler

    def set_on_response(self, state: StateName, handler: ResponseHandler) -> None:
        slot = self._slot(state)
        if slot.on_response is not None:
            logger.debug(f"on_response for {state_name(state)} overwritten")
        slot.on_response = handler

    def get(self, state: StateName) -> Optional[StateHandlers]:
        return self._handlers.get(state_name(state))

    def states(self) -> list[str]:
        return list(self._handlers.keys())

    def __contains__(self, state: StateName) -> bool:
        return state_name(state) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
