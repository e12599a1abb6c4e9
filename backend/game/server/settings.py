"""Server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "GAME_"}

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=3001, ge=1, le=65535)
    log_dir: str = "logs/game"
    cors_origins: list[str] = ["*"]

    # analysis workers
    pool_size: int = Field(default=2, ge=1, le=64)
    engine_path: str = "stockfish"
    engine_threads: int = Field(default=1, ge=1)
    default_effort: int = Field(default=10, ge=1)
    max_effort: int = Field(default=30, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @model_validator(mode="after")
    def _validate_effort_range(self) -> Self:
        if self.default_effort > self.max_effort:
            raise ValueError(f"default_effort ({self.default_effort}) exceeds max_effort ({self.max_effort})")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
