from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: str = Field(default="development", alias="STATCORE_ENV")
    log_level: str = Field(default="INFO", alias="STATCORE_LOG_LEVEL")

    # Source series ranking
    ranking_table_path: str | None = Field(
        default=None,
        alias="STATCORE_RANKING_TABLE",
        description="YAML file with (provider, measurement_method, priority) entries "
                    "that extend or override the built-in ranking table",
    )

    # Catalog search index
    index_include_groups: bool = Field(
        default=True,
        alias="STATCORE_INDEX_INCLUDE_GROUPS",
        description="Index variable groups alongside variables",
    )
    search_limit: int = Field(
        default=0,
        alias="STATCORE_SEARCH_LIMIT",
        description="Maximum results per kind returned by a search (0 = unlimited)",
    )
    unstructured_specificity: float = Field(
        default=30,
        alias="STATCORE_UNSTRUCTURED_SPECIFICITY",
        description="Specificity assigned to ids without '_'-separated constraints",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept log levels in any case"""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @field_validator("search_limit")
    @classmethod
    def validate_search_limit(cls, v: int) -> int:
        if v < 0:
            raise ValueError("STATCORE_SEARCH_LIMIT must be >= 0")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
