"""Application configuration via pydantic-settings.

All values loaded from the .env file at the project root.
The .env file takes precedence over OS-level environment variables
so stale system env vars never shadow the project config.
An empty API key is valid: the matching capability runs in fallback mode.
"""

from pathlib import Path
from typing import Tuple, Type

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# codeswitch/core/config.py → project root
_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Central application settings. .env file wins over OS env vars."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Override source priority: .env file > OS env vars > defaults."""
        return (init_settings, dotenv_settings, env_settings, file_secret_settings)

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 3001
    client_url: str = "http://localhost:5173"

    # --- Text generation (mapping + translation) ---
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4"
    mapping_temperature: float = 0.1
    translation_temperature: float = 0.3
    llm_max_tokens: int = 1000
    llm_timeout_seconds: float = 30.0

    # --- Speech to text ---
    lemonfox_api_key: str = ""
    lemonfox_base_url: str = "https://api.lemonfox.ai/v1"
    transcription_model: str = "whisper-1"

    # --- Fallback pacing ---
    fallback_translation_delay_ms: int = 100
    fallback_transcription_delay_ms: int = 700

    # --- App ---
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def allowed_origins(self) -> list[str]:
        """CLIENT_URL split on commas; "*" allows any origin."""
        return [o.strip() for o in self.client_url.split(",") if o.strip()]

    @property
    def text_generation_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def speech_to_text_enabled(self) -> bool:
        return bool(self.lemonfox_api_key)


settings = Settings()
