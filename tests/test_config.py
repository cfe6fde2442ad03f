# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from workbench_agent.config import Settings

_VARS = (
    "WORKBENCH_DATA_DIR",
    "WORKBENCH_DB_PATH",
    "WORKBENCH_DEFAULT_MODEL",
    "WORKBENCH_LLM_TEMPERATURE",
    "WORKBENCH_LLM_MAX_TOKENS",
    "WORKBENCH_LLM_TIMEOUT_SECONDS",
    "WORKBENCH_MAX_STEPS",
    "WORKBENCH_CODING_CLI",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()
    assert s.default_model == "deepseek-chat"
    assert s.llm_temperature == 0.3
    assert s.llm_max_tokens == 2000
    assert s.llm_timeout_seconds == 120.0
    assert s.max_steps == 20
    assert s.coding_cli == "claude"
    assert s.db_path == Path(".local/workbench") / "workbench.sqlite3"


def test_overrides_and_bad_numbers(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WORKBENCH_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("WORKBENCH_DEFAULT_MODEL", "  ")
    monkeypatch.setenv("WORKBENCH_LLM_MAX_TOKENS", "lots")
    monkeypatch.setenv("WORKBENCH_MAX_STEPS", "0")

    s = Settings.from_env()

    assert s.db_path == tmp_path / "workbench.sqlite3"
    assert s.default_model == "deepseek-chat"
    assert s.llm_max_tokens == 2000
    assert s.max_steps == 1
