from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    telegram_bot_token: str = ""
    db_path: str = "aturuang.json"
    text_model: str = "anthropic/claude-3.5-haiku"
    vision_model: str = "google/gemini-2.0-flash-001"
    web_url: str = "https://aturuang.hanif.app"
    timezone: str = "Asia/Jakarta"
    batch_window_seconds: float = 2.0
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
