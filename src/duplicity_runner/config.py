"""Runner configuration using pydantic-settings.

Configuration hierarchy:
- DuplicityConfig: How the duplicity binary is invoked
- LoggingConfig: Logging behavior
- RunnerConfig: Main config aggregating all sub-configs

Environment variable prefix: DUPLICITY_RUNNER_
Example: DUPLICITY_RUNNER_DUPLICITY_EXECUTABLE=/usr/local/bin/duplicity
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 1000 KiB of combined stdout and stderr
DEFAULT_MAX_BUFFER = 1024 * 1000


class DuplicityConfig(BaseSettings):
    """duplicity invocation settings."""

    model_config = SettingsConfigDict(env_prefix="DUPLICITY_RUNNER_DUPLICITY_")

    executable: str = Field(default="duplicity", description="duplicity binary name or path")
    verbosity: str = Field(default="notice", description="Value passed to --verbosity")

    # Output handling
    max_buffer: int = Field(
        default=DEFAULT_MAX_BUFFER,
        gt=0,
        description="Maximum bytes of stdout+stderr before the child is killed",
    )
    chunk_size: int = Field(default=8192, gt=0, description="Read size for output relay (bytes)")

    # Environment
    temp_dir: str | None = Field(
        default=None,
        description="TMPDIR for duplicity (defaults to the system temp dir)",
    )
    inherit_env: bool = Field(
        default=True,
        description="Pass the parent environment through (PATH, HOME, gpg agent)",
    )

    # Cancellation
    interrupt_grace: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to wait after SIGINT before SIGKILL when the caller task is cancelled",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration.

    - text: Human-readable for interactive use
    - json: Structured logging for log aggregation
    """

    model_config = SettingsConfigDict(env_prefix="DUPLICITY_RUNNER_LOGGING_")

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="text", description="Log format (text, json)")
    service_name: str = Field(default="duplicity-runner", description="Service identifier in logs")


class RunnerConfig(BaseSettings):
    """Main configuration aggregating all sub-configs.

    Sub-configs use their own prefixes (DUPLICITY_RUNNER_DUPLICITY_, ...).
    """

    model_config = SettingsConfigDict(
        env_prefix="DUPLICITY_RUNNER_",
        env_nested_delimiter="__",
    )

    duplicity: DuplicityConfig = Field(default_factory=DuplicityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_runner_config() -> RunnerConfig:
    """Get cached runner configuration singleton."""
    return RunnerConfig()
