"""
Стейт: Приветствие и запрос имени.

Вход: из idle, по команде /start, пункт 2 меню
Выход: menu после ввода имени
"""

from typing import Optional

from core.context import HandlerContext
from states.app_states import AppState
from states.base import BaseState


class WelcomeState(BaseState):
    """Спрашивает имя и сохраняет его в state data."""

    name = AppState.WELCOME
    display_name = "Welcome"

    MIN_NAME_LENGTH = 2

    async def enter(self, ctx: HandlerContext) -> Optional[AppState]:
        await ctx.send("👋 Welcome! What's your name?")
        return None

    async def handle(self, ctx: HandlerContext, text: str) -> Optional[AppState]:
        name = text.strip()

        if len(name) < self.MIN_NAME_LENGTH:
            await ctx.send("Please enter a valid name (at least 2 characters).")
            return None  # Остаёмся в стейте

        ctx.set_data("name", name)
        return AppState.MENU
