"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
All values are bound from environment variables (``AGENTGUARD_*``) and an
optional ``.env`` file without explicit dotenv loading.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings model.

    All properties are automatically bound from environment variables and .env file.
    Fields can also be passed by name when constructing settings in code or tests.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="AGENTGUARD_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="AGENTGUARD_LOG_FORMAT",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to a file under log_file_dir",
        alias="AGENTGUARD_ENABLE_FILE_LOGGING",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="AGENTGUARD_LOG_FILE_DIR",
    )

    # =====================================================================
    # Run Orchestration
    # =====================================================================
    default_policy_profile: str = Field(
        default="balanced",
        description="Policy profile used when a run does not name one",
        alias="AGENTGUARD_DEFAULT_POLICY_PROFILE",
    )
    max_turns: int = Field(
        default=6,
        ge=1,
        description="Default model-loop turn budget for a run",
        alias="AGENTGUARD_MAX_TURNS",
    )
    resume_token_ttl_seconds: int = Field(
        default=900,
        gt=0,
        description="Lifetime of a resume token minted by an approval decision",
        alias="AGENTGUARD_RESUME_TOKEN_TTL_SECONDS",
    )

    # =====================================================================
    # Model Provider
    # =====================================================================
    model_provider: str = Field(
        default="openai",
        description="Provider used by get_provider() when none is named",
        alias="AGENTGUARD_MODEL_PROVIDER",
    )
    model_name: Optional[str] = Field(
        default=None,
        description="Model name used when a provider handle is asked for its default model",
        alias="AGENTGUARD_MODEL_NAME",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="HTTP timeout for model provider requests",
        alias="AGENTGUARD_REQUEST_TIMEOUT_SECONDS",
    )


settings = Settings()
