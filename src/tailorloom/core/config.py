"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

DEFAULT_ORG_ID = "00000000-0000-0000-0000-000000000001"


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "TAILORLOOM_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 3


class RedisConfig(BaseSettings):
    """Redis cache and lock configuration."""

    model_config = {"env_prefix": "TAILORLOOM_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    socket_timeout: float = 5.0


class StitchingConfig(BaseSettings):
    """Identity stitching configuration."""

    model_config = {"env_prefix": "TAILORLOOM_STITCH_"}

    org_id: str = DEFAULT_ORG_ID
    name_match_limit: int = 5
    lock_timeout: float = 10.0


class ImportConfig(BaseSettings):
    """CSV import limits."""

    model_config = {"env_prefix": "TAILORLOOM_IMPORT_"}

    sample_size: int = 5
    preview_limit: int = 10
    preview_error_limit: int = 50
    stored_error_limit: int = 100
    saved_mapping_overlap: float = 0.7


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TAILORLOOM_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    persistence: Literal["memory", "dynamodb"] = "memory"
    cache: Literal["memory", "redis"] = "memory"
    lock: Literal["none", "memory", "redis"] = "memory"  # use "redis" when several workers share DynamoDB

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    stitching: StitchingConfig = StitchingConfig()
    imports: ImportConfig = ImportConfig()
