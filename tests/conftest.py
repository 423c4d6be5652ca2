"""
Общие фикстуры: хранилище в памяти, записывающий sender, движок.
"""

import json

import pytest

from core.builder import BotBuilder
from core.machine import StateMachine
from core.storage import StateStorage
from db.repository import MemoryUserRepository


class RecordingSender:
    """Sender, который запоминает отправленные сообщения"""

    def __init__(self):
        self.sent: list[tuple[int, str]] = []

    async def __call__(self, chat_id: int, text: str):
        self.sent.append((chat_id, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


async def seed_user(repo: MemoryUserRepository, telegram_id: int, state: str, data: dict = None):
    """Пользователь, уже существующий в хранилище"""
    await repo.create_or_update_user(
        telegram_id, telegram_id, current_state=state, state_data=json.dumps(data or {})
    )


@pytest.fixture
def repo():
    return MemoryUserRepository()


@pytest.fixture
def storage(repo):
    return StateStorage(repo, initial_state="idle")


@pytest.fixture
def builder():
    return BotBuilder()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def machine(builder, storage):
    return StateMachine(
        builder,
        storage,
        max_chain=25,
        reenter_on_same_state=True,
        enter_on_new_session=True,
    )
