"""Application configuration."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # so DB_HOST works regardless of case
    )

    # Database fields (read from .env)
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "cardleads"
    db_user: str = "postgres"
    db_password: str = "postgres"

    # "memory" keeps leads in-process (offline demos)
    storage_backend: Literal["database", "memory"] = "database"

    # OpenAI (or compatible API)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_vision_model: str = "gpt-4o"
    openai_base_url: str | None = None  # For Azure/OpenRouter

    # OCR
    ocr_provider: Literal["openai", "mock"] = "openai"

    # Card images
    card_image_dir: str = "card_images"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Exports / Google Sheets sync
    sheets_sync_token: str | None = None
    google_sheets_spreadsheet_id: str | None = None
    google_sheets_tab_name: str | None = None
    google_sheets_credentials_json: str | None = None  # service-account key, as JSON text

    # App
    log_level: str = "INFO"


settings = Settings()
