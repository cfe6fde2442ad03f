# src/workbench_agent/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (API keys live on model providers in the store).
- Components receive settings explicitly; get_settings() is only used by the CLI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "WORKBENCH"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths ----
    data_dir: Path
    db_path: Path

    # ---- Model calls ----
    default_model: str
    llm_temperature: float
    llm_max_tokens: int
    llm_timeout_seconds: float

    # ---- Execution loop ----
    max_steps: int
    default_working_dir: str

    # ---- Coding-assistant CLI delegate ----
    coding_cli: str
    coding_cli_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "workbench") or "workbench"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/workbench"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "workbench.sqlite3")

        default_model = _env(_k("DEFAULT_MODEL"), "deepseek-chat").strip() or "deepseek-chat"
        llm_temperature = _env_float(_k("LLM_TEMPERATURE"), 0.3)
        llm_max_tokens = _env_int(_k("LLM_MAX_TOKENS"), 2000)
        llm_timeout_seconds = _env_float(_k("LLM_TIMEOUT_SECONDS"), 120.0)

        # A budget below one step would never call the model.
        max_steps = max(1, _env_int(_k("MAX_STEPS"), 20))
        default_working_dir = _env(_k("WORKING_DIR"), ".").strip() or "."

        coding_cli = _env(_k("CODING_CLI"), "claude").strip() or "claude"
        coding_cli_timeout_seconds = _env_float(_k("CODING_CLI_TIMEOUT_SECONDS"), 600.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            default_model=default_model,
            llm_temperature=llm_temperature,
            llm_max_tokens=llm_max_tokens,
            llm_timeout_seconds=llm_timeout_seconds,
            max_steps=max_steps,
            default_working_dir=default_working_dir,
            coding_cli=coding_cli,
            coding_cli_timeout_seconds=coding_cli_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
