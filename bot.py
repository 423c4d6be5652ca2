"""
Telegram-бот на State Machine.

Транспорт (aiogram) передаёт каждое текстовое сообщение в StateMachine;
ответы уходят через HandlerContext.send. Два режима доставки апдейтов:
- polling: dp.start_polling
- webhook: aiohttp-сервер с эндпоинтами WEBHOOK_PATH и /health

Запуск:
    python bot.py                  # режим из BOT_MODE
    python bot.py --mode webhook
    python bot.py --set-webhook
    python bot.py --delete-webhook
    python bot.py --webhook-info
"""

import argparse
import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware, Bot, Dispatcher, F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import BotCommand, Message, TelegramObject
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from config import (
    BOT_MODE,
    BOT_TOKEN,
    GENERIC_ERROR_TEXT,
    INITIAL_STATE,
    PORT,
    START_STATE,
    WEBAPP_HOST,
    WEBHOOK_PATH,
    WEBHOOK_URL,
    get_logger,
    validate_env,
)
from config.features import flags
from core import StateMachine, StateStorage
from db import MemoryUserRepository, PostgresUserRepository, close_pool, init_db
from states.registry import create_builder

logger = get_logger(__name__)

router = Router()


# ============= СБОРКА =============

def use_postgres() -> bool:
    return flags.get("storage.backend", "postgres") == "postgres"


def build_machine() -> StateMachine:
    """StateMachine с обработчиками приложения и хранилищем из storage.backend"""
    repo = PostgresUserRepository() if use_postgres() else MemoryUserRepository()
    storage = StateStorage(repo, initial_state=INITIAL_STATE)
    machine = StateMachine(create_builder(), storage)
    logger.info(
        f"State machine ready: {len(machine.list_states())} states, "
        f"storage={type(repo).__name__}, max_chain={machine.max_chain}"
    )
    return machine


def make_sender(bot: Bot) -> Callable[[int, str], Awaitable[Any]]:
    """Отправка текста пользователю для HandlerContext.send"""
    async def send(chat_id: int, text: str):
        return await bot.send_message(chat_id, text)
    return send


# ============= СЕРИАЛИЗАЦИЯ ПО ПОЛЬЗОВАТЕЛЮ =============

class UserLockMiddleware(BaseMiddleware):
    """
    Не более одного цикла State Machine на пользователя одновременно.

    Сообщения разных пользователей обрабатываются параллельно,
    сообщения одного пользователя — по очереди.
    """

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._waiting: dict[int, int] = {}

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None:
            return await handler(event, data)

        lock = self._locks.setdefault(user.id, asyncio.Lock())
        self._waiting[user.id] = self._waiting.get(user.id, 0) + 1
        try:
            async with lock:
                return await handler(event, data)
        finally:
            self._waiting[user.id] -= 1
            if self._waiting[user.id] == 0:
                del self._waiting[user.id]
                del self._locks[user.id]


# ============= ОБРАБОТЧИКИ =============

async def notify_failure(message: Message) -> None:
    """Best-effort сообщение пользователю о внутренней ошибке"""
    try:
        await message.answer(GENERIC_ERROR_TEXT)
    except Exception as e:
        logger.error(f"Failed to notify {message.chat.id} about error: {e}")


@router.message(CommandStart())
async def cmd_start(message: Message, machine: StateMachine):
    """/start — перевод в стартовый стейт"""
    try:
        await machine.force_state(
            message.from_user.id, message.chat.id, START_STATE, make_sender(message.bot)
        )
    except Exception:
        logger.exception(f"Failed to handle /start for {message.from_user.id}")
        await notify_failure(message)


@router.message(Command("reset"))
async def cmd_reset(message: Message, machine: StateMachine):
    """/reset — сброс сессии в начальный стейт"""
    try:
        await machine.reset(message.from_user.id)
        await message.answer("🔄 Session reset.")
    except Exception:
        logger.exception(f"Failed to reset session for {message.from_user.id}")
        await notify_failure(message)


@router.message(F.text)
async def on_text(message: Message, machine: StateMachine):
    """Любое текстовое сообщение — в State Machine"""
    try:
        await machine.handle_message(
            message.from_user.id, message.chat.id, message.text, make_sender(message.bot)
        )
    except Exception:
        logger.exception(f"Failed to handle message from {message.from_user.id}")
        await notify_failure(message)


def create_dispatcher(machine: StateMachine) -> Dispatcher:
    dp = Dispatcher(machine=machine)
    dp.message.outer_middleware(UserLockMiddleware())
    dp.include_router(router)
    return dp


async def set_commands(bot: Bot):
    await bot.set_my_commands([
        BotCommand(command="start", description="Start over"),
        BotCommand(command="reset", description="Reset conversation"),
    ])


# ============= ВЕБХУК =============

async def set_webhook(url: str = WEBHOOK_URL) -> None:
    """Зарегистрировать вебхук в Telegram"""
    bot = Bot(token=BOT_TOKEN)
    try:
        await bot.set_webhook(url, allowed_updates=["message"])
        logger.info(f"✅ Webhook set: {url}")
    finally:
        await bot.session.close()


async def delete_webhook() -> None:
    """Удалить вебхук (перестать получать апдейты)"""
    bot = Bot(token=BOT_TOKEN)
    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("✅ Webhook deleted")
    finally:
        await bot.session.close()


async def get_webhook_info() -> dict:
    """Информация о текущем вебхуке"""
    bot = Bot(token=BOT_TOKEN)
    try:
        info = await bot.get_webhook_info()
        return info.model_dump()
    finally:
        await bot.session.close()


async def health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "ok",
        "mode": "webhook",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


def create_webhook_app(bot: Bot, dp: Dispatcher) -> web.Application:
    """aiohttp-приложение с вебхуком и /health"""
    app = web.Application()
    app.router.add_get("/health", health)
    SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path=WEBHOOK_PATH)
    setup_application(app, dp, bot=bot)
    return app


# ============= ЗАПУСК =============

async def on_startup(bot: Bot):
    if use_postgres():
        await init_db()
    await set_commands(bot)


async def on_webhook_startup(bot: Bot):
    await bot.set_webhook(WEBHOOK_URL, allowed_updates=["message"])
    logger.info(f"📡 Webhook URL: {WEBHOOK_URL}")


async def on_shutdown(bot: Bot):
    if use_postgres():
        await close_pool()


async def run_polling():
    bot = Bot(token=BOT_TOKEN)
    dp = create_dispatcher(build_machine())
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    logger.info("🚀 Бот запущен в режиме polling")
    await bot.delete_webhook(drop_pending_updates=False)
    await dp.start_polling(bot)


def run_webhook():
    bot = Bot(token=BOT_TOKEN)
    dp = create_dispatcher(build_machine())
    dp.startup.register(on_startup)
    dp.startup.register(on_webhook_startup)
    dp.shutdown.register(on_shutdown)

    logger.info(f"🚀 Бот запущен в режиме webhook на {WEBAPP_HOST}:{PORT}")
    web.run_app(create_webhook_app(bot, dp), host=WEBAPP_HOST, port=PORT)


def main():
    parser = argparse.ArgumentParser(description="State machine Telegram bot")
    parser.add_argument("--mode", choices=["polling", "webhook"], default=BOT_MODE)
    parser.add_argument("--set-webhook", action="store_true", help="Register WEBHOOK_URL and exit")
    parser.add_argument("--delete-webhook", action="store_true", help="Delete webhook and exit")
    parser.add_argument("--webhook-info", action="store_true", help="Print webhook info and exit")
    args = parser.parse_args()

    if args.set_webhook:
        asyncio.run(set_webhook())
        return
    if args.delete_webhook:
        asyncio.run(delete_webhook())
        return
    if args.webhook_info:
        print(asyncio.run(get_webhook_info()))
        return

    validate_env(args.mode)

    if args.mode == "webhook":
        run_webhook()
    else:
        asyncio.run(run_polling())


if __name__ == "__main__":
    main()
