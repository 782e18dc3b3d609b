"""
Order processor settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation.
All settings can be overridden via environment variables or .env file.
Variable names match the deployment manifests (SQS_QUEUE_URL,
PROCESSOR_CONCURRENCY, PAYMENTSIM_SECONDS, ...).
"""

from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.common.exceptions import ConfigurationError

DEFAULT_CONCURRENCY = 1
DEFAULT_PAYMENTSIM_SECONDS = 3


def _positive_int_or_default(value: Any, default: int) -> Any:
    """Return value as int when it is a positive integer, else the default."""
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


class ProcessorSettings(BaseSettings):
    """
    Order processor configuration.

    Only ``sqs_queue_url`` is required; everything else has a default.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue Configuration
    sqs_queue_url: str = Field(
        ...,
        min_length=1,
        description="URL of the SQS queue holding order-created events",
    )
    environment: str = Field(
        default="aws",
        min_length=1,
        description="Environment label used for metrics file naming (aws, local, ...)",
    )
    aws_endpoint: str | None = Field(
        default=None,
        description="Custom AWS endpoint override for non-production emulation (LocalStack)",
    )
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region used for request signing",
    )

    # Processing Configuration
    processor_concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        description="Maximum number of orders processed simultaneously",
    )
    paymentsim_seconds: int = Field(
        default=DEFAULT_PAYMENTSIM_SECONDS,
        ge=1,
        description="Duration of the simulated payment verification per order",
    )

    # Fetch Loop Configuration
    receive_batch_size: int = Field(
        default=10,
        ge=1,
        le=10,  # SQS ReceiveMessage limit
        description="Maximum messages requested per receive call",
    )
    receive_wait_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        description="Long polling wait per receive call",
    )
    visibility_timeout_seconds: int = Field(
        default=60,
        ge=0,
        le=43200,
        description="Visibility timeout applied to received messages",
    )
    receive_backoff_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Sleep after a failed receive call before retrying",
    )

    # Shutdown Configuration
    drain_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Upper bound on waiting for in-flight orders at shutdown (None = wait forever)",
    )

    # Telemetry Configuration
    metrics_dir: str = Field(
        default=".",
        description="Directory where the per-run metrics CSV is written",
    )
    metrics_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Port for the Prometheus metrics endpoint (disabled when unset)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("processor_concurrency", mode="before")
    @classmethod
    def _fallback_concurrency(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_CONCURRENCY)

    @field_validator("paymentsim_seconds", mode="before")
    @classmethod
    def _fallback_paymentsim(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_PAYMENTSIM_SECONDS)

    @field_validator("aws_endpoint", "drain_timeout_seconds", "metrics_port", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


def load_settings(**overrides: Any) -> ProcessorSettings:
    """
    Build a fresh settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid
    """
    try:
        return ProcessorSettings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper() or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid processor configuration: {problems}") from e
