"""
Runtime configuration for solr-mcp

Pydantic-based settings loaded from environment variables, grouped by subsystem:

1. Solr connection (SOLR_MCP_SOLR_URL, SOLR_BASIC_USER, SOLR_BASIC_PASS)
2. Schema catalog (SOLR_MCP_DEFAULT_COLLECTION, SCHEMA_CACHE_TTL_SECONDS, FIELD_METADATA_FILE)
3. Planner and embedder endpoints (LLM_*, EMBEDDING_*)
4. Smart search policy (ALLOW_VECTOR, ALLOW_HYBRID, HYBRID_CANDIDATE_MULTIPLIER)
5. Server runtime (TRANSPORT, HOST, PORT, LOG_LEVEL)
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_SCHEMA_TTL_SECONDS,
    FIELD_METADATA_FILE,
    HYBRID_CANDIDATE_MULTIPLIER,
)
from .errors import ConfigurationError

__all__ = [
    "SolrMcpConfig",
    "TransportType",
]

VERSION = "0.1.0"


class TransportType(str, Enum):
    """Supported MCP transport types."""

    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable-http"


class SolrMcpConfig(BaseSettings):
    """solr-mcp settings. Field names are accepted as keyword arguments too."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    # Solr
    solr_url: str = Field(
        default="http://localhost:8983",
        validation_alias="SOLR_MCP_SOLR_URL",
    )
    solr_basic_user: Optional[str] = Field(
        default=None,
        validation_alias="SOLR_BASIC_USER",
    )
    solr_basic_pass: Optional[str] = Field(
        default=None,
        validation_alias="SOLR_BASIC_PASS",
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
    )

    # Schema catalog
    default_collection: str = Field(
        default="gettingstarted",
        validation_alias="SOLR_MCP_DEFAULT_COLLECTION",
    )
    schema_cache_ttl: float = Field(
        default=DEFAULT_SCHEMA_TTL_SECONDS,
        ge=0,
        validation_alias="SCHEMA_CACHE_TTL_SECONDS",
    )
    field_metadata_file: str = Field(
        default=FIELD_METADATA_FILE,
        validation_alias="FIELD_METADATA_FILE",
    )

    # Planner
    llm_base_url: str = Field(
        default="http://localhost:8000/v1",
        validation_alias="LLM_BASE_URL",
    )
    llm_api_key: Optional[str] = Field(
        default=None,
        validation_alias="LLM_API_KEY",
    )
    llm_model: str = Field(
        default="gpt-4o",
        validation_alias="LLM_MODEL",
    )

    # Embedder
    embedding_base_url: str = Field(
        default="http://localhost:8000/v1",
        validation_alias="EMBEDDING_BASE_URL",
    )
    embedding_api_key: Optional[str] = Field(
        default=None,
        validation_alias="EMBEDDING_API_KEY",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        validation_alias="EMBEDDING_MODEL",
    )

    # Smart search policy
    allow_vector: bool = Field(
        default=False,
        validation_alias="ALLOW_VECTOR",
    )
    allow_hybrid: bool = Field(
        default=False,
        validation_alias="ALLOW_HYBRID",
    )
    hybrid_candidate_multiplier: int = Field(
        default=HYBRID_CANDIDATE_MULTIPLIER,
        ge=1,
        validation_alias="HYBRID_CANDIDATE_MULTIPLIER",
    )

    # Server runtime
    transport: TransportType = Field(
        default=TransportType.STDIO,
        validation_alias="TRANSPORT",
    )
    host: str = Field(default="localhost", validation_alias="HOST")
    port: int = Field(default=9000, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    server_name: str = "solr-mcp"
    version: str = VERSION

    @field_validator("solr_url", "llm_base_url", "embedding_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    def require_planner(self) -> None:
        """Raise if the planner cannot be called."""
        if not self.llm_base_url or not self.llm_api_key:
            raise ConfigurationError(
                "LLM_BASE_URL and LLM_API_KEY must be set for smart search"
            )

    def require_embedding(self) -> None:
        """Raise if the embedder cannot be called."""
        if not self.embedding_base_url or not self.embedding_api_key:
            raise ConfigurationError(
                "EMBEDDING_BASE_URL and EMBEDDING_API_KEY must be set for vector search"
            )
