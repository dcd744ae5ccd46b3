from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "JoTrack"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8790
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/jotrack.db"
    data_dir: Path = Path("./data")
    attachments_dir: Path = Path("./data/attachments")
    max_attachment_bytes: int = 10 * 1024 * 1024
    allowed_attachment_extensions: str = "pdf,doc,docx,txt,md,rtf,html,htm,png,jpg,jpeg"
    trash_retention_days: int = 30

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 4000
    anthropic_timeout_sec: int = 90

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_sec: int = 60

    tavily_api_key: str = ""
    tavily_base_url: str = "https://api.tavily.com"
    tavily_timeout_sec: int = 30
    tavily_max_results: int = 5

    job_fetch_timeout_sec: int = 20

    ai_provider_default: str = "claude"
    ai_rate_limit_calls: int = 10
    ai_rate_limit_window_sec: int = 300
    ai_runs_keep: int = 3

    cors_origins: str = "http://127.0.0.1:3000,http://localhost:3000"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("ai_provider_default")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        allowed = {"claude", "openai"}
        if value not in allowed:
            raise ValueError(f"ai_provider_default must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def allowed_extension_set(self) -> set[str]:
        return {
            ext.strip().lower().lstrip(".")
            for ext in self.allowed_attachment_extensions.split(",")
            if ext.strip()
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
