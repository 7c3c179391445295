import os
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("PLAYER_MODAL_CONFIG", "player_modal.toml")
_ENV_PATH = os.getenv("PLAYER_MODAL_ENV", ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLAYER_MODAL_",
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    base_url: str = "http://127.0.0.1:40120"
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    # Delay before the closed dialog drops its content and resets the tab
    close_grace_seconds: float = Field(default=0.2, ge=0)
    # Touch environments have no implicit Enter-to-save
    is_mobile: bool = False

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > toml file > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
