from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from recite.consts import APP_NAME
from recite.domain.constants import (
    DEFAULT_AGGRESSIVENESS,
    DEFAULT_MAX_QUEUE_SIZE,
    SQLITE_TIMEOUT,
)

CONFIG_FILES = (
    Path(".config/recite/config.toml"),
    Path(".recite.toml"),
)

DEFAULT_STORE_NAMES = {
    "json": "progress.json",
    "sqlite": "progress.db",
}


def _data_dir() -> Path:
    return Path.home() / ".local/share" / APP_NAME


class AppConfig(BaseSettings):
    """
    Configuration model for recite.
    Supports loading from:
    1. Environment variables (RECITE_*)
    2. Config file (~/.config/recite/config.toml or ~/.recite.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="RECITE_",
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "json", "sqlite"] = "json"
    store_path: Path | None = None
    sqlite_timeout: float = Field(default=SQLITE_TIMEOUT, gt=0)

    # Scheduling
    max_queue_items: int = Field(default=DEFAULT_MAX_QUEUE_SIZE, ge=0)
    aggressiveness: float = Field(default=DEFAULT_AGGRESSIVENESS, ge=0.0, le=1.0)
    low_quality_policy: Literal["keep", "requeue"] = "keep"

    # Logging
    log_dir: Path | None = None  # adds a rotating log file when set
    verbose: int = Field(default=1, ge=0)

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

        # First existing config file wins; CLI overrides beat env, env beats the file
        toml_file = None
        for f in CONFIG_FILES:
            candidate = Path.home() / f
            if candidate.exists():
                toml_file = candidate
                break

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("store_path", "log_dir", mode="before")
    @classmethod
    def resolve_paths(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    def resolved_store_path(self) -> Path | None:
        """Store location for file-backed backends; None for the memory backend."""
        if self.backend == "memory":
            return None
        if self.store_path is not None:
            return self.store_path
        return _data_dir() / DEFAULT_STORE_NAMES[self.backend]

    def resolved_practice_path(self) -> Path | None:
        """
        Practice history location. SQLite shares the progress database; the
        JSON backend keeps a sibling document next to the progress file.
        """
        store = self.resolved_store_path()
        if store is None or self.backend == "sqlite":
            return store
        return store.with_name(f"{store.stem}-practice.json")

    def log_file(self) -> Path | None:
        if self.log_dir is None:
            return None
        return self.log_dir / f"{APP_NAME}.log"


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/recite/config.toml (if exists)
    3. Environment variables (RECITE_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
