"""
Central configuration for the QSL tracker services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, Enum):
    JSON = "json"
    REDIS = "redis"


class Settings(BaseSettings):
    """Root settings shared across the API, scheduler and scripts."""

    model_config = SettingsConfigDict(
        env_prefix="QSL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Unique process ID bound to every log line")

    # ── Data files ───────────────────────────────────────────
    data_dir: Path = Field(default=Path("data"))
    state_file: str = "state.json"
    mock_entries_file: str = "mock_form_entries.json"
    log_file: str = "qsl.log"
    log_config_file: str = "log_config.json"

    # ── Status store ─────────────────────────────────────────
    store_backend: StoreBackend = StoreBackend.JSON
    redis_url: str = "redis://localhost:6379/0"
    redis_state_key: str = "qsl:state"

    # ── Entry sources ────────────────────────────────────────
    release_json_url: Optional[str] = Field(
        default=None,
        description="Structured entry list: http(s) URL or local path (relative to data_dir).",
    )
    analysis_page_url: Optional[str] = Field(
        default=None,
        description="HTML analysis page scraped when no structured source produced entries.",
    )
    release_tag_enabled: bool = True
    release_owner: str = "zzqsld"
    release_repo: str = "BG4JXV-QSL-MANGER"
    release_tag: str = "data-latest"
    release_asset_name: str = "form_entries.json"
    github_api_base: str = "https://api.github.com"

    # ── Fetching ─────────────────────────────────────────────
    fetch_max_attempts: int = 3
    fetch_backoff_step_s: float = 0.5
    fetch_timeout_s: float = 15.0
    user_agent: str = "qsl-poller"

    # ── Heuristic extraction ─────────────────────────────────
    callsign_question: str = "请问您的呼号"
    code_question: str = "请输入签收码"
    card_type_question: str = "请问您的卡片类型"
    heuristic_answer_limit: int = 3

    # ── Scheduler ────────────────────────────────────────────
    poll_enabled: bool = False
    poll_interval_s: float = 300.0

    # ── Workflow dispatch ────────────────────────────────────
    github_owner: str = "zzqsld"
    github_repo: str = "BG4JXV-QSL-MANGER"
    github_workflow: str = "forms-scrape.yml"
    github_ref: str = "main"
    github_token: str = ""
    insecure_tls: bool = False

    # ── API ──────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    cors_origins: list[str] = ["*"]

    # ── Log sink ─────────────────────────────────────────────
    log_max_bytes: int = 4 * 1024 * 1024
    log_min_bytes: int = 1024

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = False
    metrics_port: int = 9090

    @model_validator(mode="after")
    def use_legacy_env_fallback(self) -> "Settings":
        """Honour the un-prefixed variables older deployments export.

        Only fields that were not set explicitly (or through a QSL_ variable)
        fall back to the legacy names.
        """
        legacy: dict[str, tuple[str, ...]] = {
            "release_json_url": ("RELEASE_JSON_URL",),
            "analysis_page_url": ("ANALYSIS_PAGE_URL",),
            "github_token": ("SERVER_GITHUB_TOKEN", "GITHUB_TOKEN"),
            "github_owner": ("SERVER_GITHUB_OWNER",),
            "github_repo": ("SERVER_GITHUB_REPO",),
            "github_workflow": ("SERVER_GITHUB_WORKFLOW",),
            "github_ref": ("SERVER_GITHUB_REF",),
        }
        for field_name, env_names in legacy.items():
            if field_name in self.model_fields_set:
                continue
            for env_name in env_names:
                raw = os.environ.get(env_name)
                if raw:
                    setattr(self, field_name, raw)
                    break
        if "insecure_tls" not in self.model_fields_set and os.environ.get("SERVER_INSECURE_TLS") == "1":
            self.insecure_tls = True
        return self

    @property
    def state_path(self) -> Path:
        return self.data_dir / self.state_file

    @property
    def mock_entries_path(self) -> Path:
        return self.data_dir / self.mock_entries_file

    @property
    def log_path(self) -> Path:
        return self.data_dir / self.log_file

    @property
    def log_config_path(self) -> Path:
        return self.data_dir / self.log_config_file


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
