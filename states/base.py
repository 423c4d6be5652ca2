"""
Базовый класс для стейтов State Machine.

Каждый стейт — это отдельный файл в states/common/. Стейт-класс —
удобная обёртка над fluent API: при регистрации его методы enter/handle
становятся on_enter/on_response стейта name.

Пример создания нового стейта:

    from states.base import BaseState

    class MyState(BaseState):
        name = AppState.MY_STATE
        display_name = "My State"

        async def enter(self, ctx):
            await ctx.send("Hello!")

        async def handle(self, ctx, text):
            ctx.set_data("answer", text)
            return AppState.NEXT  # или None чтобы остаться
"""

from abc import ABC, abstractmethod
from typing import Optional

from core.builder import BotBuilder
from core.context import HandlerContext
from core.registry import StateName, state_name


class BaseState(ABC):
    """
    Базовый класс для всех стейтов.

    Атрибуты класса:
        name: Идентификатор стейта
        display_name: Человекочитаемое название для логов
    """

    name: StateName = "base"

    display_name: str = "Base State"

    async def enter(self, ctx: HandlerContext) -> Optional[StateName]:
        """
        Вызывается при ВХОДЕ в стейт.

        Обычно отправляет приглашение. Может вернуть стейт для
        немедленного перехода дальше.
        """
        return None

    @abstractmethod
    async def handle(self, ctx: HandlerContext, text: str) -> Optional[StateName]:
        """
        Обрабатывает входящее сообщение.

        Returns:
            Стейт для перехода или None если остаёмся в стейте
        """
        pass

    def register(self, builder: BotBuilder) -> None:
        """Регистрирует enter/handle как обработчики стейта."""
        builder.for_state(self.name).on_enter(self.enter).on_response(self.handle)

    def get_display_name(self) -> str:
        return self.display_name or state_name(self.name)

    def __repr__(self) -> str:
        return f"<State: {state_name(self.name)}>"
