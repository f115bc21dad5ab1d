"""Application configuration using Pydantic Settings."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    These describe how the service runs (where the catalog lives, time
    budgets, logging). The store owner's search options live in
    :class:`SearchConfig` and are read from the option store instead.
    """

    # API Settings
    api_title: str = Field(default="Live Product Search", description="API title")
    api_version: str = Field(default="1.0.0", description="API version")
    errors_as_ok: bool = Field(
        default=False,
        description=(
            "Answer search failures with HTTP 200 and success=false, for storefront "
            "widgets that only read 2xx bodies"
        ),
    )

    # Logging Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # Catalog Settings
    catalog_backend: str = Field(
        default="memory",
        description="Catalog adapter backend (memory, sqlite)",
    )
    catalog_path: Path = Field(
        default=Path("./data/catalog.json"),
        description="JSON catalog fixture used by the memory backend",
    )
    catalog_db_path: Path = Field(
        default=Path("./data/catalog.db"),
        description="SQLite database used by the sqlite backend",
    )
    recent_titles_ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="TTL of the adapter's recent-title sample cache",
    )

    # Option store and word tables
    options_path: Path = Field(
        default=Path("./data/search_options.json"),
        description="Persisted key/value store with the search options",
    )
    typo_corrections_path: Path | None = Field(
        default=None,
        description="JSON map replacing the built-in typo corrections",
    )
    synonyms_path: Path | None = Field(
        default=None,
        description="JSON map replacing the built-in synonym table",
    )

    # Time budgets
    request_deadline_seconds: float = Field(
        default=2.0,
        ge=0.1,
        le=30.0,
        description="End-to-end budget for catalog access in one request",
    )
    scope_timeout_seconds: float = Field(
        default=0.5,
        ge=0.01,
        le=10.0,
        description="Budget for a single catalog adapter call",
    )

    # Pipeline bounds
    candidate_multiplier: int = Field(
        default=8,
        ge=1,
        le=50,
        description="Total candidates kept = multiplier x result_limit",
    )
    category_section_limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum categories in the response category section",
    )
    fuzzy_sample_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Number of recent titles sampled for fuzzy repair",
    )
    fuzzy_max_distance: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Maximum edit distance accepted by fuzzy repair",
    )
    fuzzy_min_length: int = Field(
        default=4,
        ge=1,
        description="Fuzzy repair only runs for queries at least this long",
    )
    description_word_limit: int = Field(
        default=15,
        ge=1,
        le=200,
        description="Words kept in projected short descriptions",
    )

    # Storefront
    shop_url: str = Field(
        default="http://localhost:8000/shop",
        description="Shop page used for 'view all results' links",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("catalog_backend")
    @classmethod
    def validate_catalog_backend(cls, v: str) -> str:
        """Ensure catalog backend is known."""
        valid_backends = {"memory", "sqlite"}
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(
                f"catalog_backend must be one of {valid_backends}, got '{v}'"
            )
        return v_lower

    @field_validator("shop_url")
    @classmethod
    def validate_shop_url(cls, v: str) -> str:
        """Ensure the shop URL is absolute."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("shop_url must start with http:// or https://")
        return v.rstrip("/")


class SearchConfig(BaseModel):
    """Search options for one request.

    Frozen: a request captures the instance once and a reload
    replaces the whole object.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    enable_ajax: bool = True
    min_chars: int = Field(default=2, ge=1, le=5)
    result_limit: int = Field(
        default=10,
        ge=1,
        le=50,
        validation_alias=AliasChoices("result_limit", "search_limit"),
    )
    search_delay: int = Field(default=300, ge=0, le=5000)

    search_in_title: bool = True
    search_in_sku: bool = False
    search_in_content: bool = False
    search_in_excerpt: bool = False
    search_in_categories: bool = False
    search_in_tags: bool = False
    search_in_attributes: bool = False

    exclude_out_of_stock: bool = False
    enable_typo_correction: bool = True
    enable_synonyms: bool = True
    excluded_product_ids: frozenset[int] = Field(
        default=frozenset(),
        validation_alias=AliasChoices("excluded_product_ids", "excluded_products"),
    )

    @field_validator("excluded_product_ids", mode="before")
    @classmethod
    def parse_excluded_product_ids(cls, v: Any) -> Any:
        """Accept the comma-separated form the option store keeps."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            return frozenset(int(part) for part in v.split(",") if part.strip())
        return v

    def summary(self) -> dict[str, Any]:
        """Public, JSON-friendly view of the options."""
        data = self.model_dump()
        data["excluded_product_ids"] = sorted(self.excluded_product_ids)
        return data


LEGACY_OPTION_PREFIX = "aasfwc_"


class SearchConfigSource:
    """Read :class:`SearchConfig` from the persisted option store.

    The store is a flat JSON object keyed by option name. Keys written by
    the storefront plugin carry an ``aasfwc_`` prefix, which is stripped.
    """

    def __init__(self, options_path: Path | None = None):
        self.options_path = options_path

    def read_options(self) -> dict[str, Any]:
        """Return the raw key/value pairs from the store.

        Raises:
            ValueError: If the store exists but is not a JSON object
        """
        if self.options_path is None or not self.options_path.exists():
            return {}

        raw = json.loads(self.options_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(
                f"Option store {self.options_path} must contain a JSON object"
            )

        options: dict[str, Any] = {}
        for key, value in raw.items():
            if key.startswith(LEGACY_OPTION_PREFIX):
                key = key[len(LEGACY_OPTION_PREFIX) :]
            options[key] = value
        return options

    def load(self) -> SearchConfig:
        """Load and validate the search options.

        Returns:
            SearchConfig: Frozen options, defaults for anything missing

        Raises:
            pydantic.ValidationError: If a stored value is out of range
        """
        options = self.read_options()
        config = SearchConfig.model_validate(options)
        logger.info(
            f"Loaded search options from {self.options_path} "
            f"({len(options)} stored keys)"
        )
        return config


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Settings: The application settings

    Raises:
        ValueError: If settings validation fails
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment.

    Returns:
        Settings: The reloaded application settings
    """
    global _settings
    _settings = Settings()
    return _settings
