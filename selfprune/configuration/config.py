"""Configuration management for SelfPrune."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from selfprune.domain.model.prune import PruneConfig

KNOWN_STORAGE_BACKENDS = ("redis", "file", "memory")


class Settings(BaseSettings):
    """Application settings."""

    # API Settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_allowed_origins: str | list[str] = Field(default=["*"], alias="API_ALLOWED_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Pruning defaults (live values are operator-tunable through the API)
    prune_confidence_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, alias="PRUNE_CONFIDENCE_THRESHOLD"
    )
    max_context_tokens: int = Field(default=128_000, gt=0, alias="MAX_CONTEXT_TOKENS")
    enable_pruning: bool = Field(default=True, alias="ENABLE_PRUNING")
    # When false, parsed suggestions wait in the pending inbox for approval
    prune_auto_approve: bool = Field(default=True, alias="PRUNE_AUTO_APPROVE")
    agent_base_instructions: str | None = Field(default=None, alias="AGENT_BASE_INSTRUCTIONS")

    # Token-count service; tagging and pruning always use estimation
    tokenizer_model: str = Field(default="gpt-4o", alias="TOKENIZER_MODEL")
    exact_token_counting: bool = Field(default=True, alias="EXACT_TOKEN_COUNTING")

    # Prune state storage (ordered fallback chain)
    prune_storage_backends: str = Field(default="redis,file,memory", alias="PRUNE_STORAGE_BACKENDS")
    prune_storage_namespace: str = Field(default="prune-store", alias="PRUNE_STORAGE_NAMESPACE")
    prune_storage_dir: Path = Field(default=Path("~/.selfprune"), alias="PRUNE_STORAGE_DIR")

    # Redis Settings
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_password: str | None = Field(default=None, alias="REDIS_PASSWORD")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("api_allowed_origins", mode="before")
    @classmethod
    def split_allowed_origins(cls, value: str | list[str]) -> list[str]:
        """Accept a comma separated origin list from the environment."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        if value is None:
            return "INFO"
        return str(value).strip().upper()

    @property
    def storage_backend_names(self) -> list[str]:
        """Backend names in fallback order."""
        return [
            name.strip().lower()
            for name in self.prune_storage_backends.split(",")
            if name.strip()
        ]

    @property
    def redis_url(self) -> str:
        """Get Redis connection URL."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/0"
        return f"redis://{self.redis_host}:{self.redis_port}/0"

    def default_prune_config(self) -> PruneConfig:
        """Initial prune config before any operator update."""
        return PruneConfig(
            confidence_threshold=self.prune_confidence_threshold,
            max_context_tokens=self.max_context_tokens,
            enable_pruning=self.enable_pruning,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
