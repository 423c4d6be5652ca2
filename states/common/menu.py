"""
Стейт: Главное меню.

Вход: после ввода имени
Выход: welcome (пункт 2), idle (пункт 3)
"""

from typing import Optional

from core.context import HandlerContext
from states.app_states import AppState
from states.base import BaseState


class MenuState(BaseState):
    """Меню из трёх пунктов, выбор цифрой."""

    name = AppState.MENU
    display_name = "Menu"

    async def enter(self, ctx: HandlerContext) -> Optional[AppState]:
        name = ctx.get_data("name") or "User"
        await ctx.send(
            f"📋 Menu for {name}:\n\n"
            "1. Show name\n"
            "2. Go to welcome\n"
            "3. Exit\n\n"
            "Type 1, 2, or 3"
        )
        return None

    async def handle(self, ctx: HandlerContext, text: str) -> Optional[AppState]:
        choice = text.strip()

        if choice == "1":
            await ctx.send(f"Your name is: {ctx.get_data('name')}")
            return None
        if choice == "2":
            return AppState.WELCOME
        if choice == "3":
            await ctx.send("👋 Goodbye!")
            return AppState.IDLE

        await ctx.send("Please select 1, 2, or 3.")
        return None
