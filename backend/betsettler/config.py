"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class MongoConfig(BaseModel):
    """Bet, market and audit store connection."""

    uri: str = "mongodb://localhost:27017"
    database: str = "bets"
    server_selection_timeout_ms: int = 5000
    bets_collection: str = "bets"
    markets_collection: str = "markets"
    logs_collection: str = "bet_logs"


class RedisConfig(BaseModel):
    """Refund policy source connection."""

    host: str = "localhost"
    port: int = 6379
    username: str | None = None
    password: str | None = None
    limits_key: str = "limits:latest"


class LedgerSettings(BaseModel):
    """External ledger (bankroll manager) endpoint."""

    url: str = ""
    api_key: str = ""
    timeout_seconds: float = 30.0


class ProcessorConfig(BaseModel):
    """Settlement cycle parameters."""

    interval_ms: int = 5000
    default_refund_pct: float = 95.0

    @field_validator("interval_ms")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        """Reject non-positive cycle intervals."""
        if v <= 0:
            raise ValueError("interval_ms must be positive")
        return v

    @field_validator("default_refund_pct")
    @classmethod
    def validate_refund_pct(cls, v: float) -> float:
        """Keep the fallback refund percentage inside 0-100."""
        if not 0 <= v <= 100:
            raise ValueError("default_refund_pct must be between 0 and 100")
        return v


class Settings(BaseSettings):
    """Main configuration class."""

    config_file: Path = Path("config.yaml")
    log_level: str = "INFO"
    logfire_token: str = ""
    environment: str = "development"

    # Nested configuration sections
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def interval_seconds(self) -> float:
        """Cycle interval converted for the scheduler."""
        return self.processor.interval_ms / 1000

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.config_file

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. Using defaults and environment."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["mongo", "redis", "ledger", "processor"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
