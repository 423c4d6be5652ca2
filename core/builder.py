"""
BotBuilder — fluent API регистрации обработчиков стейтов.

Использование:
    from core.builder import BotBuilder

    builder = BotBuilder(states=AppState)

    async def welcome_enter(ctx):
        await ctx.send("👋 Welcome! What's your name?")

    async def welcome_response(ctx, text):
        ctx.set_data("name", text.strip())
        return "menu"

    builder.for_state("welcome").on_enter(welcome_enter).on_response(welcome_response)

    # Один обработчик сразу для нескольких стейтов
    builder.for_state(["collect_name", "collect_email"]).on_response(collect_field)

Builder создаётся явно при старте и передаётся в StateMachine и в код
регистрации стейтов (глобального экземпляра нет).
"""

from typing import Iterable, Optional, Union

from core.registry import (
    EnterHandler,
    HandlerRegistry,
    ResponseHandler,
    StateHandlers,
    StateName,
    state_name,
)


class StateBuilder:
    """
    Builder, привязанный к одному или нескольким стейтам.

    Для списка стейтов под каждым из них независимо регистрируется
    один и тот же обработчик. Если обработчику нужно различать стейты,
    он смотрит ctx.current_state.
    """

    def __init__(self, states: list[StateName], registry: HandlerRegistry):
        self.states = states
        self._registry = registry

    def on_enter(self, handler: EnterHandler) -> "StateBuilder":
        """
        Обработчик входа в стейт.

        Может вернуть имя стейта для немедленного перехода дальше.
        """
        for state in self.states:
            self._registry.set_on_enter(state, handler)
        return self

    def on_response(self, handler: ResponseHandler) -> "StateBuilder":
        """
        Обработчик входящего сообщения в стейте.

        Возвращает имя следующего стейта или None, чтобы остаться.
        """
        for state in self.states:
            self._registry.set_on_response(state, handler)
        return self

    def __repr__(self) -> str:
        return f"<StateBuilder: {', '.join(state_name(s) for s in self.states)}>"


class BotBuilder:
    """Точка регистрации всех обработчиков бота."""

    def __init__(self, states: Optional[Iterable[StateName]] = None):
        """
        Args:
            states: Закрытый набор допустимых стейтов (например, Enum).
                    None — любые строки.
        """
        self.registry = HandlerRegistry(states)

    def for_state(self, state: Union[StateName, list[StateName]]) -> StateBuilder:
        """
        Возвращает builder для одного стейта или списка стейтов.

        Args:
            state: Имя стейта или список имён
        """
        states = list(state) if isinstance(state, (list, tuple)) else [state]
        return StateBuilder(states, self.registry)

    def on_enter(self, state: StateName, handler: EnterHandler) -> "BotBuilder":
        self.registry.set_on_enter(state, handler)
        return self

    def on_response(self, state: StateName, handler: ResponseHandler) -> "BotBuilder":
        self.registry.set_on_response(state, handler)
        return self

    def has_on_enter(self, state: StateName) -> bool:
        handlers = self.registry.get(state)
        return bool(handlers and handlers.on_enter)

    def has_on_response(self, state: StateName) -> bool:
        handlers = self.registry.get(state)
        return bool(handlers and handlers.on_response)

    def get_handlers(self, state: StateName) -> Optional[StateHandlers]:
        return self.registry.get(state)

    def registered_states(self) -> list[str]:
        """Стейты, для которых зарегистрирован хотя бы один обработчик."""
        return self.registry.states()

    def is_known(self, state: StateName) -> bool:
        return self.registry.is_known(state)
