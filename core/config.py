from __future__ import annotations
import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Base .env load first
load_dotenv()

class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # ignore unknown env keys to avoid crashes
    )

    # Environment
    environment: Literal["development", "staging", "production", "test"] = Field(default="development")
    log_level: str = Field(default="INFO")

    # Logging
    logs_dir: Path = Field(default=Path(os.getenv("LOGS_DIR", "data/output")))
    log_file: Path | None = None
    log_to_file: bool = Field(default=True)

    # GCP / Vertex AI embeddings
    gcp_project_id: str | None = Field(default=os.getenv("GCP_PROJECT_ID"))
    gcp_location: str = Field(default=os.getenv("GCP_LOCATION", "us-central1"))
    vertex_model_embed: str = Field(default=os.getenv("VERTEX_MODEL_EMBED", "text-embedding-004"))

    # Vector store / Elastic
    elastic_cloud_endpoint: str | None = Field(default=os.getenv("ELASTIC_CLOUD_ENDPOINT", "http://localhost:9200"))
    elastic_api_key: str | None = Field(default=os.getenv("ELASTIC_API_KEY"))
    elastic_request_timeout: int = Field(default=30, ge=1)
    elastic_index_receipts: str = Field(default=os.getenv("ELASTIC_INDEX_RECEIPTS", "receipts"))
    elastic_index_transactions: str = Field(default=os.getenv("ELASTIC_INDEX_TRANSACTIONS", "bank_transactions"))
    elastic_vector_dim: int = Field(default=768, ge=1)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = str(value).upper() if value else "INFO"
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}
        if level not in allowed:
            # Fallback to INFO instead of raising to avoid boot failure
            return "INFO"
        return level

    @field_validator("elastic_index_receipts", "elastic_index_transactions", mode="before")
    @classmethod
    def _normalize_index_name(cls, value: str) -> str:
        # Elasticsearch index names must be lowercase
        return str(value).strip().lower()

    @model_validator(mode="after")
    def _derive_paths_and_ensure_dirs(self) -> "AppConfig":
        # Layered environment loading: .env.<ENVIRONMENT> overrides base
        env_file_variant = Path(f".env.{self.environment}")
        if env_file_variant.exists():
            load_dotenv(dotenv_path=env_file_variant, override=True)
            # Re-read dynamic fields that might be env-driven
            self.gcp_project_id = os.getenv("GCP_PROJECT_ID", self.gcp_project_id)
            self.gcp_location = os.getenv("GCP_LOCATION", self.gcp_location)
            self.vertex_model_embed = os.getenv("VERTEX_MODEL_EMBED", self.vertex_model_embed)
            self.elastic_cloud_endpoint = os.getenv("ELASTIC_CLOUD_ENDPOINT", self.elastic_cloud_endpoint)
            self.elastic_api_key = os.getenv("ELASTIC_API_KEY", self.elastic_api_key)

        if self.log_file is None:
            self.log_file = self.logs_dir / "app.log"

        if self.log_to_file:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
        return self

config = AppConfig()
