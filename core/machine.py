"""
StateMachine — движок переходов между стейтами.

Управляет:
- Выполнением on_response / on_enter зарегистрированных обработчиков
- Цепочками переходов (on_enter вернул другой стейт → его on_enter → ...)
- Защитой от зацикливания цепочки
- Сохранением стейта и state data после каждого завершённого шага

Использование:
    from core.builder import BotBuilder
    from core.machine import StateMachine
    from core.storage import StateStorage

    builder = BotBuilder()
    register_all_states(builder)

    storage = StateStorage(user_repo)
    machine = StateMachine(builder, storage)

    # Обрабатываем сообщение
    await machine.handle_message(telegram_id, chat_id, text, sender)

Один цикл на пользователя одновременно: сериализация сообщений одного
пользователя — задача транспорта (см. UserLockMiddleware в bot.py).
"""

import inspect
import logging
from typing import Any, Optional

from config import MAX_TRANSITION_CHAIN
from config.features import flags
from core.builder import BotBuilder
from core.context import HandlerContext, Sender, StateData
from core.exceptions import InvalidTransition, StateNotFound, TransitionLoopError
from core.registry import StateName, state_name
from core.storage import Session, StateStorage

logger = logging.getLogger(__name__)


class StateMachine:
    """
    Движок State Machine.

    Переходы определяются возвращаемыми значениями обработчиков, таблицы
    переходов нет. Политика (лимит цепочки, повторный вход в тот же стейт)
    берётся из аргументов или из feature flags.
    """

    def __init__(
        self,
        builder: BotBuilder,
        storage: StateStorage,
        max_chain: Optional[int] = None,
        reenter_on_same_state: Optional[bool] = None,
        enter_on_new_session: Optional[bool] = None,
    ):
        """
        Args:
            builder: BotBuilder с зарегистрированными обработчиками
            storage: StateStorage для работы с БД
            max_chain: Максимум on_enter в одной цепочке переходов
            reenter_on_same_state: on_response вернул текущий стейт →
                                   повторно вызвать его on_enter
            enter_on_new_session: Для нового пользователя выполнить on_enter
                                  начального стейта до обработки сообщения
        """
        self.builder = builder
        self.storage = storage

        if max_chain is None:
            max_chain = int(flags.get("engine.max_transition_chain", MAX_TRANSITION_CHAIN))
        if reenter_on_same_state is None:
            reenter_on_same_state = flags.is_enabled("engine.reenter_on_same_state", default=True)
        if enter_on_new_session is None:
            enter_on_new_session = flags.is_enabled("engine.enter_on_new_session", default=True)

        self.max_chain = max_chain
        self.reenter_on_same_state = reenter_on_same_state
        self.enter_on_new_session = enter_on_new_session

    # =========================================
    # Выполнение обработчиков
    # =========================================

    @staticmethod
    async def _call(handler, *args) -> Optional[str]:
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        if result is None:
            return None
        try:
            return state_name(result)
        except TypeError as e:
            raise InvalidTransition(f"Handler returned {result!r} instead of a state") from e

    async def execute_on_response(
        self, state: StateName, context: HandlerContext, text: str
    ) -> Optional[str]:
        """
        Вызывает on_response стейта.

        Returns:
            Стейт, который вернул обработчик, или None
            (None и если обработчика нет)
        """
        handlers = self.builder.get_handlers(state)
        if handlers is None or handlers.on_response is None:
            return None
        return await self._call(handlers.on_response, context, text)

    async def execute_on_enter(self, state: StateName, context: HandlerContext) -> Optional[str]:
        """Вызывает on_enter стейта. Без обработчика — None."""
        handlers = self.builder.get_handlers(state)
        if handlers is None or handlers.on_enter is None:
            return None
        return await self._call(handlers.on_enter, context)

    def _next_state(self, current: str, result: Optional[str], context: HandlerContext) -> Optional[str]:
        """Возвращённый стейт или запрошенный через context.transition()."""
        target = result if result is not None else context.requested_state
        if target is not None and not self.builder.is_known(target):
            raise InvalidTransition(f"Handler of {current} returned unknown state: {target}")
        return target

    # =========================================
    # Цикл обработки сообщения
    # =========================================

    @staticmethod
    def _context(session: Session, state: str, store: StateData, sender: Sender) -> HandlerContext:
        return HandlerContext(
            user_id=session.user_id,
            telegram_id=session.telegram_id,
            chat_id=session.chat_id,
            current_state=state,
            store=store,
            sender=sender,
        )

    async def handle_message(self, telegram_id: int, chat_id: int, text: str, sender: Sender) -> str:
        """
        Главный метод — обрабатывает входящее сообщение.

        1. Загружает или создаёт сессию
        2. Новому пользователю — on_enter начального стейта (с цепочкой)
        3. on_response текущего стейта
        4. Если вернулся стейт — переход и цепочка on_enter
        5. Сохраняет изменения state data

        Args:
            telegram_id: Telegram ID пользователя
            chat_id: ID чата
            text: Текст сообщения
            sender: Корутина отправки (chat_id, text)

        Returns:
            Стейт пользователя после обработки
        """
        session, is_new = await self.storage.get_or_create_session(telegram_id, chat_id)
        store = StateData(session.state_data)

        if is_new and self.enter_on_new_session:
            logger.info(f"New user {telegram_id}, entering {session.current_state}")
            await self._run_chain(session, store, sender, session.current_state)

        state = session.current_state
        context = self._context(session, state, store, sender)
        logger.debug(f"Handling message in state: {state}")

        result = await self.execute_on_response(state, context, text)
        next_state = self._next_state(state, result, context)

        if next_state is None or (next_state == state and not self.reenter_on_same_state):
            await self.storage.save_session(session, state, store.snapshot())
            return state

        logger.info(f"State {state} returned: {next_state} (user {telegram_id})")
        return await self._transition(session, store, sender, next_state)

    async def _transition(self, session: Session, store: StateData, sender: Sender, target: str) -> str:
        """Сохраняет переход в target и запускает цепочку on_enter."""
        previous = session.current_state
        await self.storage.save_session(session, target, store.snapshot())
        logger.info(f"Transition: {previous} -> {target} (user {session.telegram_id})")
        return await self._run_chain(session, store, sender, target)

    async def _run_chain(self, session: Session, store: StateData, sender: Sender, state: str) -> str:
        """
        Цепочка on_enter начиная со state.

        Останавливается, когда on_enter вернул None или тот же стейт.
        Каждый шаг получает новый контекст с тем же хранилищем данных.
        Стейт сохраняется после каждого успешно завершённого шага.

        Raises:
            TransitionLoopError: если шагов больше max_chain
        """
        path = [state]
        steps = 0
        context = self._context(session, state, store, sender)

        while True:
            steps += 1
            if steps > self.max_chain:
                logger.error(f"Transition loop for {session.telegram_id}: {' -> '.join(path[-6:])}")
                raise TransitionLoopError(path, self.max_chain)

            result = await self.execute_on_enter(state, context)
            next_state = self._next_state(state, result, context)

            if next_state is None or next_state == state:
                await self.storage.save_session(session, state, store.snapshot())
                return state

            logger.info(f"Chained transition: {state} -> {next_state} (user {session.telegram_id})")
            await self.storage.save_session(session, next_state, store.snapshot())
            state = next_state
            path.append(state)
            context = context.step(state)

    # =========================================
    # Административные операции
    # =========================================

    async def force_state(
        self, telegram_id: int, chat_id: int, target_state: StateName, sender: Sender
    ) -> str:
        """
        Принудительно переводит пользователя в указанный стейт.

        Используется для команды /start и восстановления. Выполняет
        on_enter стейта по обычным правилам цепочки.

        Raises:
            StateNotFound: если стейт не объявлен
        """
        target = state_name(target_state)
        if not self.builder.is_known(target):
            raise StateNotFound(f"State not found: {target}")

        session, _ = await self.storage.get_or_create_session(telegram_id, chat_id)
        store = StateData(session.state_data)
        return await self._transition(session, store, sender, target)

    async def reset(self, telegram_id: int) -> bool:
        """Сбрасывает сессию в начальный стейт с пустыми данными."""
        return await self.storage.reset_session(telegram_id)

    # =========================================
    # Информация
    # =========================================

    def get_state_info(self, state: StateName) -> dict[str, Any]:
        """
        Возвращает информацию о стейте.

        Returns:
            Словарь с информацией о стейте (пустой, если обработчиков нет)
        """
        name = state_name(state)
        if name not in self.builder.registered_states():
            return {}

        return {
            "name": name,
            "has_on_enter": self.builder.has_on_enter(name),
            "has_on_response": self.builder.has_on_response(name),
            "initial": name == self.storage.initial_state,
        }

    def list_states(self) -> list[str]:
        """Возвращает список стейтов с обработчиками."""
        return self.builder.registered_states()
