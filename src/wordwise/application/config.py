from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from wordwise.domain.constants import (
    DEFAULT_RESPONSE_TIME_MS,
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)

CONFIG_FILES = [
    Path.home() / ".config/wordwise/config.toml",
    Path.home() / ".wordwise.toml",
]


def _default_database_url() -> str:
    return f"sqlite:///{Path.home() / '.config/wordwise/wordwise.db'}"


class AppConfig(BaseSettings):
    """
    Configuration model for wordwise.
    Supports loading from:
    1. Environment variables (WORDWISE_*)
    2. Config file (~/.config/wordwise/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="WORDWISE_",
        toml_file=CONFIG_FILES,
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "sql"] = "sql"
    database_url: str = Field(default_factory=_default_database_url)
    thresholds_file: Path | None = None

    # Persistence retry
    retry_attempts: int = Field(default=RETRY_ATTEMPTS, ge=1)
    retry_base_delay: float = Field(default=RETRY_BASE_DELAY, ge=0)
    retry_max_delay: float = Field(default=RETRY_MAX_DELAY, ge=0)

    # Reviews
    default_response_time_ms: float = Field(default=DEFAULT_RESPONSE_TIME_MS, ge=0)

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins; init kwargs (CLI overrides) take final precedence.
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("thresholds_file", mode="before")
    @classmethod
    def resolve_thresholds_file(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @field_validator("retry_max_delay")
    @classmethod
    def max_delay_covers_base(cls, v: float, info) -> float:
        base = info.data.get("retry_base_delay", RETRY_BASE_DELAY)
        if v < base:
            raise ValueError("retry_max_delay must be at least retry_base_delay")
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/wordwise/config.toml (if exists)
    3. Environment variables (WORDWISE_*)
    4. cli_overrides (passed from Typer), None values ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
