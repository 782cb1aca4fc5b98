"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field, model_validator


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )
    allow_credentials: bool = Field(default=True)
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class RateLimiterConfig(BaseModel):
    """Rate limiter configuration."""

    requests: int = Field(
        default=60, description="Number of requests allowed per window"
    )
    window_ms: int = Field(default=60000, description="Time window in milliseconds")
    enabled: bool = Field(default=True, description="Enable rate limiting")
    per_endpoint: bool = Field(
        default=False, description="Track limits separately for each endpoint"
    )
    per_method: bool = Field(
        default=False, description="Track limits separately for each HTTP method"
    )


class RetryConfig(BaseModel):
    """Retry policy shared by Temporal workflows and activities."""

    maximum_attempts: int = Field(default=3, description="Maximum attempts")
    initial_interval_seconds: int = Field(default=1)
    backoff_coefficient: float = Field(default=2.0)
    maximum_interval_seconds: int = Field(default=60)


class TemporalWorkflowConfig(BaseModel):
    """Default timeouts applied when starting workflows."""

    execution_timeout_s: int = Field(default=3600)
    run_timeout_s: int = Field(default=3600)
    task_timeout_s: int = Field(default=10)
    retry: RetryConfig = Field(
        default_factory=lambda: RetryConfig(maximum_attempts=1)
    )


class TemporalActivityConfig(BaseModel):
    """Default timeouts applied when executing activities."""

    start_to_close_timeout_s: int = Field(default=60)
    schedule_to_close_timeout_s: int = Field(default=600)
    retry: RetryConfig = Field(default_factory=RetryConfig)


class TemporalConfig(BaseModel):
    """Temporal configuration."""

    enabled: bool = Field(default=False, description="Enable temporal service")
    url: str = Field(default="temporal:7233", description="Temporal server url")
    namespace: str = Field(default="default", description="Temporal namespace")
    tls: bool = Field(default=False, description="Connect to Temporal over TLS")
    workflows: TemporalWorkflowConfig = Field(default_factory=TemporalWorkflowConfig)
    activities: TemporalActivityConfig = Field(default_factory=TemporalActivityConfig)


class RedisConfig(BaseModel):
    """Redis configuration used by the rate limiter."""

    url: str | None = Field(default=None, description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Redis password, injected into the URL if set"
    )
    decode_responses: bool = Field(
        default=True, description="Decode responses to str"
    )

    @computed_field
    @property
    def connection_string(self) -> str | None:
        """Redis URL with the password applied when configured separately."""
        if not self.url:
            return None
        if not self.password:
            return self.url
        from sqlalchemy.engine import make_url

        url = make_url(self.url)
        url = url.set(username=url.username or "", password=self.password)
        return url.render_as_string(hide_password=False)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./accounts.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @computed_field
    @property
    def password(self) -> str | None:
        """
        Get the database password from the appropriate source.

        1. A mounted secrets file given by `password_file`
        2. The environment variable named by `password_env_var`
        3. Whatever the URL itself carries
        """
        if self.password_file:
            try:
                with open(self.password_file) as f:
                    return f.read().strip()
            except OSError as e:
                raise ValueError("Failed to read database password from file.") from e
        if self.password_env_var:
            password = os.getenv(self.password_env_var)
            if not password:
                raise ValueError(
                    f"Environment variable {self.password_env_var} not set"
                )
            return password

        from sqlalchemy.engine import make_url

        return make_url(self.url).password

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with the resolved password."""
        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)
        if self.is_sqlite:
            return self.url

        resolved_password = self.password
        if base_url.password and resolved_password != base_url.password:
            logger.warning(
                "Database password from secrets does not match the one in the URL. "
                "Using the password from secrets."
            )
        if resolved_password:
            base_url = base_url.set(password=resolved_password)
        return base_url.render_as_string(hide_password=False)


class PaginationConfig(BaseModel):
    """Pagination defaults for list endpoints."""

    default_per_page: int = Field(default=15, ge=1)
    max_per_page: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> PaginationConfig:
        if self.default_per_page > self.max_per_page:
            raise ValueError("default_per_page cannot exceed max_per_page")
        return self


class ApiConfig(BaseModel):
    """HTTP API behaviour switches."""

    title: str = Field(default="User Accounts API")
    version: str = Field(default="1.0.0")
    sanitize_input: bool = Field(
        default=True, description="Strip tags, trim and drop NUL bytes from input"
    )
    log_requests: bool = Field(default=True, description="Log incoming requests")
    log_responses: bool = Field(default=True, description="Log outgoing responses")


class WelcomeEmailConfig(BaseModel):
    """Settings for the welcome email jobs."""

    subject: str = Field(default="Welcome to Our Application")
    min_delay_seconds: int = Field(default=2, ge=0)
    max_delay_seconds: int = Field(default=15, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    timeout_seconds: int = Field(default=60, ge=1)

    @model_validator(mode="after")
    def _check_delays(self) -> WelcomeEmailConfig:
        if self.min_delay_seconds > self.max_delay_seconds:
            raise ValueError("min_delay_seconds cannot exceed max_delay_seconds")
        return self


class EmailProviderConfig(BaseModel):
    """HTTP email provider used by the worker."""

    api_url: str | None = Field(default=None, description="Provider send endpoint")
    api_key: str | None = Field(default=None, description="Provider secret")
    from_address: str = Field(default="no-reply@example.com")
    http_timeout: float = Field(default=10.0)


class SecurityConfig(BaseModel):
    """Credential handling."""

    bcrypt_rounds: int = Field(
        default=12, ge=4, le=31, description="bcrypt work factor (log2 of iterations)"
    )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool = Field(
        default=False, description="Expose internal error messages to clients"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    rate_limiter: RateLimiterConfig = Field(
        default_factory=RateLimiterConfig, description="Rate limiter configuration"
    )
    temporal: TemporalConfig = Field(
        default_factory=TemporalConfig, description="Temporal configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    pagination: PaginationConfig = Field(
        default_factory=PaginationConfig, description="Pagination configuration"
    )
    api: ApiConfig = Field(default_factory=ApiConfig, description="API configuration")
    welcome_email: WelcomeEmailConfig = Field(
        default_factory=WelcomeEmailConfig, description="Welcome email jobs"
    )
    email: EmailProviderConfig = Field(
        default_factory=EmailProviderConfig, description="Email provider"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
