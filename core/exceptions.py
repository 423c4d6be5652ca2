"""
Исключения State Machine.
"""


class InvalidTransition(Exception):
    """Обработчик вернул стейт вне объявленного набора."""
    pass


class StateNotFound(Exception):
    """Стейт не объявлен в закрытом реестре."""
    pass


class TransitionLoopError(Exception):
    """Цепочка on_enter превысила лимит за один цикл (вероятно, цикл A → B → A)."""

    def __init__(self, path: list[str], limit: int):
        self.path = path
        self.limit = limit
        tail = " -> ".join(path[-6:])
        super().__init__(f"Transition chain exceeded {limit} steps: ... {tail}")


class StorageError(Exception):
    """Ошибка чтения или записи сессии в хранилище."""
    pass
