"""
Тесты feature flags (config/features.py).
"""

import pytest

from config.features import FeatureFlags


@pytest.fixture
def flags_file(tmp_path):
    path = tmp_path / "features.yaml"
    path.write_text(
        "engine:\n"
        "  max_transition_chain: 10\n"
        "  reenter_on_same_state: false\n"
        "storage:\n"
        "  backend: memory\n",
        encoding="utf-8",
    )
    return path


def test_values_are_read_by_dotted_path(flags_file):
    flags = FeatureFlags(flags_file)

    assert flags.get("engine.max_transition_chain") == 10
    assert flags.get("storage.backend") == "memory"
    assert flags.is_enabled("engine.reenter_on_same_state") is False


def test_missing_values_use_defaults(flags_file):
    flags = FeatureFlags(flags_file)

    assert flags.get("engine.unknown", 3) == 3
    assert flags.is_enabled("engine.enter_on_new_session", default=True) is True


def test_env_overrides_file(flags_file, monkeypatch):
    monkeypatch.setenv("ENGINE_MAX_TRANSITION_CHAIN", "7")
    monkeypatch.setenv("ENGINE_REENTER_ON_SAME_STATE", "yes")
    flags = FeatureFlags(flags_file)

    assert flags.get("engine.max_transition_chain") == 7
    assert flags.is_enabled("engine.reenter_on_same_state") is True


def test_missing_file_gives_empty_config(tmp_path):
    flags = FeatureFlags(tmp_path / "absent.yaml")

    assert flags.get("storage.backend", "postgres") == "postgres"


def test_invalid_yaml_is_rejected(tmp_path):
    path = tmp_path / "features.yaml"
    path.write_text("engine: [unclosed", encoding="utf-8")

    with pytest.raises(ValueError):
        FeatureFlags(path)
