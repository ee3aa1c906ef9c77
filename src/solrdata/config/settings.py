"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. YAML config file (if specified)
  2. Environment variables (SOLRDATA_ prefix)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class SolrSettings(BaseModel):
    """Connection settings for the Solr server."""

    base_url: str = Field(default="http://localhost:8983/solr", description="Solr base URL")
    core: str | None = Field(default=None, description="Default core/collection name")
    username: str | None = Field(default=None, description="Basic-auth username")
    password: str | None = Field(default=None, description="Basic-auth password")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    version: str = Field(default="9.0", description="Solr server version, used for feature checks")
    unique_key: str = Field(default="id", description="Schema unique key field")


class TemplateSettings(BaseModel):
    """Behaviour of ``SolrTemplate``; immutable once built."""

    model_config = ConfigDict(frozen=True)

    schema_features: frozenset[str] = Field(
        default_factory=frozenset,
        description="Schema-creation features requested by the application (e.g. 'create_missing_fields')",
    )
    cursor_batch_size: int = Field(default=100, ge=1, description="Rows fetched per cursor round trip")

    @field_validator("schema_features", mode="before")
    @classmethod
    def _parse_features(cls, v: Any) -> frozenset[str]:
        """Accept a comma-separated string (env var) or any iterable."""
        if isinstance(v, str):
            return frozenset(part.strip() for part in v.split(",") if part.strip())
        return frozenset(v or ())


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the SOLRDATA_ prefix.
    Nested settings use double underscores: SOLRDATA_SOLR__CORE=books

    Example:
        SOLRDATA_SOLR__BASE_URL=http://solr:8983/solr
        SOLRDATA_SOLR__CORE=books
        SOLRDATA_OBSERVABILITY__LOG_LEVEL=debug
    """

    model_config = {
        "env_prefix": "SOLRDATA_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    solr: SolrSettings = Field(default_factory=SolrSettings)
    template: TemplateSettings = Field(default_factory=TemplateSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are passed as init arguments, so they win
        over environment variables; sections the file omits still come from
        the environment.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
