"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/mise.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for mutating endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    ingredient_tables_path: Optional[Path] = Field(
        default=None,
        description="JSON file overriding the bundled synonym/plural/unit tables.",
    )
    recommend_include_unmatched: bool = Field(
        default=False,
        description="Return recipes sharing no ingredient with the pantry from /menu/recommend.",
    )
    regenerate_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Optimistic write attempts before a grocery list regeneration gives up.",
    )
    meal_plan_max_range_days: int = Field(
        default=90,
        ge=1,
        description="Widest date range accepted when listing meal plans.",
    )
    default_owner: str = Field(
        default="default",
        description="Owner used for grocery lists when the request carries no X-User-ID.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("MISE_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (api_token := _env("MISE_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("MISE_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("MISE_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("MISE_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (tables_path := _env("MISE_INGREDIENT_TABLES_PATH")):
        payload["ingredient_tables_path"] = Path(tables_path)
    if (include_unmatched := _env("MISE_RECOMMEND_INCLUDE_UNMATCHED")):
        payload["recommend_include_unmatched"] = _coerce_bool(include_unmatched)
    if (max_attempts := _env("MISE_REGENERATE_MAX_ATTEMPTS")):
        try:
            payload["regenerate_max_attempts"] = int(max_attempts)
        except ValueError:
            pass
    if (max_range := _env("MISE_MEAL_PLAN_MAX_RANGE_DAYS")):
        try:
            payload["meal_plan_max_range_days"] = int(max_range)
        except ValueError:
            pass
    if (default_owner := _env("MISE_DEFAULT_OWNER")):
        payload["default_owner"] = default_owner
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
