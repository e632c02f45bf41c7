"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures all application settings from environment variables with
validation and defaults. Supports .env files for local development.

Key Components:
- Settings: Process-wide settings (AWS connection, logging, sinks)
- TriggerSettings: Host configuration surface of the SQS trigger
"""

from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.poll import IntervalUnit, PollConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="SQS Workflow Nodes", description="Application name")
    app_version: str = Field(default="0.3.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: Optional[str] = Field(default=None, description="AWS region")
    aws_access_key_id: Optional[str] = Field(default=None, description="AWS access key id")
    aws_secret_access_key: Optional[SecretStr] = Field(
        default=None,
        description="AWS secret access key"
    )
    aws_session_token: Optional[SecretStr] = Field(
        default=None,
        description="AWS session token for temporary credentials"
    )
    sqs_endpoint_url: Optional[str] = Field(
        default=None,
        description="Override SQS endpoint (LocalStack, ElasticMQ)"
    )

    # Command settings
    continue_on_fail: bool = Field(
        default=False,
        description="Emit error records instead of aborting on a failed item"
    )

    # Delivery settings
    webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook URL receiving trigger records; records are logged when unset"
    )
    delivery_timeout: int = Field(
        default=10,
        ge=1,
        le=30,
        description="HTTP timeout in seconds for webhook delivery attempts"
    )
    delivery_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Webhook delivery attempts per record"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('webhook_url', 'sqs_endpoint_url')
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate optional URLs use HTTP(S)."""
        if v is None or v == "":
            return None
        if not v.startswith(('http://', 'https://')):
            raise ValueError("URL must be a valid HTTP/HTTPS URL")
        return v


class TriggerSettings(BaseSettings):
    """
    Host configuration surface of the SQS trigger.

    Read from SQS_TRIGGER_* environment variables. The poll fields carry
    no defaults: the host must set each of them.
    """

    model_config = SettingsConfigDict(
        env_prefix="SQS_TRIGGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    queue_url: str = Field(..., description="Queue URL (listed or entered manually)")
    polling_interval: int = Field(..., gt=0, description="Polling interval value")
    interval_unit: IntervalUnit = Field(..., description="Polling interval unit")
    max_messages: int = Field(..., ge=1, le=10, description="Max messages per poll")
    delete_after_delivery: bool = Field(..., description="Delete messages after delivery")
    visibility_timeout: int = Field(..., ge=0, le=43200, description="Visibility timeout in seconds")
    wait_time: int = Field(..., ge=0, le=20, description="Long-poll wait time in seconds")
    include_message_attributes: bool = Field(..., description="Forward message attributes")

    def to_poll_config(self) -> PollConfig:
        """Convert the host surface to a PollConfig."""
        return PollConfig.from_interval(
            self.polling_interval,
            self.interval_unit,
            queue_url=self.queue_url,
            max_messages=self.max_messages,
            wait_time_seconds=self.wait_time,
            visibility_timeout_seconds=self.visibility_timeout,
            delete_after_delivery=self.delete_after_delivery,
            include_message_attributes=self.include_message_attributes
        )


# Global settings instance
settings = Settings()
