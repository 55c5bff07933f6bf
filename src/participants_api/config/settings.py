"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Loads all service settings from environment variables with validation
and defaults. Supports .env files for local development.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Participants API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    stage: str = Field(default="dev", description="Deployment stage")

    # DynamoDB settings
    participants_table_name: str = Field(
        ...,
        description="Name of the DynamoDB participants table"
    )

    # S3 settings
    aws_bucket_name: str = Field(
        ...,
        description="S3 bucket receiving uploaded profile pictures"
    )

    # Participant settings
    participant_id_max_attempts: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum draws when allocating a unique participantId"
    )
    max_bulk_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Maximum participants per bulk upload (DynamoDB transaction limit)"
    )

    @field_validator('participants_table_name')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate DynamoDB table name."""
        if not v or not isinstance(v, str):
            raise ValueError("Table name must be a non-empty string")

        if not re.match(r'^[a-zA-Z0-9_.-]+$', v):
            raise ValueError(
                "Table name must contain only letters, numbers, dots, hyphens, and underscores"
            )

        return v

    @field_validator('aws_bucket_name')
    @classmethod
    def validate_bucket_name(cls, v: str) -> str:
        """Validate the bucket name is present."""
        if not v or not v.strip():
            raise ValueError("aws_bucket_name must be a non-empty string")
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


# Global settings instance
settings = Settings()
