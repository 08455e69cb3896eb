"""
Configuration settings for pg2sqlite.

Uses Pydantic Settings to load environment variables for the source database
connection, the migration defaults and logging. The settings object is only a
loader: each run gets its own immutable MigrationConfig built from it.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pg2sqlite.domain.models import MigrationConfig
from pg2sqlite.errors import ConfigurationError


class Settings(BaseSettings):
    # Source database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("postgres", alias="DB_NAME")
    db_schema: str = Field("public", alias="DB_SCHEMA")

    # Migration
    sqlite_output: str = Field("output.sqlite3", alias="SQLITE_OUTPUT")
    migration_workers: int = Field(4, alias="MIGRATION_WORKERS")
    exclude_table_regex: Optional[str] = Field(None, alias="EXCLUDE_TABLE_REGEX")
    exclude_data_regex: Optional[str] = Field(None, alias="EXCLUDE_DATA_REGEX")
    table_where: Dict[str, str] = Field(default_factory=dict, alias="TABLE_WHERE")
    table_order_by: Dict[str, str] = Field(default_factory=dict, alias="TABLE_ORDER_BY")
    default_order_by: Optional[str] = Field(None, alias="DEFAULT_ORDER_BY")
    overwrite: bool = Field(False, alias="OVERWRITE")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def to_migration_config(self, **overrides: Any) -> MigrationConfig:
        """
        Build the immutable run configuration.

        Keyword overrides (e.g. from CLI flags) replace the matching field; a
        value of None keeps the setting. Map overrides are merged per table.
        """
        values: Dict[str, Any] = {
            "exclude_tables": self.exclude_table_regex,
            "exclude_data": self.exclude_data_regex,
            "where": dict(self.table_where),
            "order_by": dict(self.table_order_by),
            "default_order_by": self.default_order_by,
            "workers": self.migration_workers,
            "overwrite": self.overwrite,
        }
        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("where", "order_by"):
                values[key].update(value)
            else:
                values[key] = value
        try:
            return MigrationConfig(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid migration configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
