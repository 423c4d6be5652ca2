"""
Стейт: Начальный, в нём создаётся каждый новый пользователь.

Вход: новый пользователь, сброс сессии, "Exit" из меню
Выход: welcome
"""

from typing import Optional

from core.context import HandlerContext
from states.app_states import AppState
from states.base import BaseState


class IdleState(BaseState):
    """
    Стейт ожидания.

    При входе сразу переводит в welcome. Если пользователь пишет,
    находясь в idle (например, после выхода из меню), тоже ведёт в welcome.
    """

    name = AppState.IDLE
    display_name = "Idle"

    async def enter(self, ctx: HandlerContext) -> Optional[AppState]:
        return AppState.WELCOME

    async def handle(self, ctx: HandlerContext, text: str) -> Optional[AppState]:
        if text.strip().lower() == "start":
            return AppState.WELCOME

        await ctx.send("Let's get started!")
        return AppState.WELCOME
