"""
Feature Flags для политики State Machine.

Позволяет без изменения кода:
- Менять лимит цепочки переходов
- Выбирать поведение при возврате того же стейта из on_response
- Переключать хранилище сессий (postgres / memory)

Использование:
    from config.features import flags

    if flags.is_enabled("engine.reenter_on_same_state"):
        ...
    limit = flags.get("engine.max_transition_chain", 25)
"""

import os
from typing import Any, Optional

import yaml

from config.settings import FEATURES_PATH


class FeatureFlags:
    """
    Флаги из features.yaml с приоритетом переменных окружения.

    Формат env переменных: путь с точками заменяется на подчёркивания
    в верхнем регистре. Пример: "engine.max_transition_chain" →
    "ENGINE_MAX_TRANSITION_CHAIN".
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: Путь к features.yaml. По умолчанию ищет в папке config/
        """
        if config_path is None:
            config_path = FEATURES_PATH

        self._config: dict = {}
        self._load_config(config_path)

    def _load_config(self, path) -> None:
        """Загружает конфигурацию из YAML файла."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self._config = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in features.yaml: {e}")

    @staticmethod
    def _env_name(path: str) -> str:
        return path.upper().replace(".", "_")

    def is_enabled(self, path: str, default: bool = False) -> bool:
        """
        Проверяет, включён ли флаг.

        Args:
            path: Путь к флагу через точку (например, "engine.reenter_on_same_state")
            default: Значение, если флаг не задан ни в env, ни в файле

        Returns:
            True если флаг включён
        """
        env_value = os.getenv(self._env_name(path))
        if env_value is not None:
            return env_value.lower() in ("true", "1", "yes", "on")

        value = self._get_value(path)
        if value is None:
            return default
        return bool(value)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Получает значение флага (не только boolean).

        Числовые env переменные приводятся к int.
        """
        env_value = os.getenv(self._env_name(path))
        if env_value is not None:
            try:
                return int(env_value)
            except ValueError:
                return env_value

        value = self._get_value(path)
        return value if value is not None else default

    def _get_value(self, path: str) -> Any:
        """Получает значение по пути через точку."""
        value = self._config
        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value


# Глобальный экземпляр для использования во всём приложении
flags = FeatureFlags()
