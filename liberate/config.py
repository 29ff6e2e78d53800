"""Pipeline configuration with environment variable support."""

from pathlib import Path

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline configuration loaded from environment variables.

    Loads from environment (LIBERATE_*), .env file, or defaults. Build one
    instance per process and pass it to the components that need it.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBERATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Source project layout
    platform_root: str = "supabase"
    functions_root: str = "supabase/functions"
    handler_entry_file: str = "index.ts"
    migrations_dir: str = "migrations"
    migration_extensions: list[str] = [".sql"]
    config_file: str = "supabase/config.toml"

    # Packaged output
    route_extension: str = ".ts"
    middleware_extension: str = ".ts"

    # Conversion service
    conversion_api_url: str = "http://localhost:8787"
    conversion_api_token: SecretStr | None = None
    conversion_timeout: float = 120.0

    # Orchestrated deployment
    orchestrator_url: str | None = None
    orchestrator_timeout: float = 60.0

    # Direct file transfer
    transfer_connect_timeout: float = 30.0
    transfer_write_timeout: float = 60.0

    # Local state
    state_file: Path = Path(".liberate/state.json")
    log_level: str = "WARNING"

    @field_validator("orchestrator_url", "conversion_api_token", mode="before")
    @classmethod
    def parse_null(cls, v: str | None) -> str | None:
        """Convert 'null' string to None."""
        if isinstance(v, str) and v.lower() in ("null", "none", ""):
            return None
        return v

    @field_validator("platform_root", "functions_root", "migrations_dir", "config_file")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        """Store layout paths without leading or trailing slashes."""
        return v.strip("/")

    @field_validator("route_extension", "middleware_extension")
    @classmethod
    def dotted_extension(cls, v: str) -> str:
        return v if v.startswith(".") else f".{v}"

    @field_validator("migration_extensions")
    @classmethod
    def dotted_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("state_file", mode="after")
    @classmethod
    def create_state_dir(cls, v: Path) -> Path:
        """Create the state file's directory if it doesn't exist."""
        v.parent.mkdir(parents=True, exist_ok=True)
        return v.resolve()
