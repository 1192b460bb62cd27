"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_RATES_API_URL = "https://api.frankfurter.app"
DEFAULT_TIME_API_URL = "https://worldtimeapi.org/api"


class ConverterConfig(BaseModel):
    """A validated configuration model for the converter services."""

    # Remote providers
    rates_api_url: str = DEFAULT_RATES_API_URL
    time_api_url: str = DEFAULT_TIME_API_URL
    request_timeout: float = 10.0
    user_agent: str = "uniconv/1.0"

    # Retry policy shared by both providers
    retry_attempts: int = 3
    retry_base_delay: float = 1.0

    # Persistent store
    data_dir: str = Field(default="", repr=False)
    primary_capacity_kb: int = 5120
    primary_max_value_kb: int = 512
    secondary_max_value_kb: int = 25600
    cleanup_interval: float = 3600.0
    cleanup_initial_delay: float = 5.0

    # Unit conversion memo cache
    memo_max_entries: int = 1000
    memo_ttl: float = 600.0

    # Startup behaviour
    offline: bool = False

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("rates_api_url", "time_api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Provider URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError("Request timeout must be between 0 and 120 seconds.")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Retry attempts must be between 1 and 10.")
        return v

    @field_validator("retry_base_delay", "cleanup_initial_delay", "memo_ttl")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delays and TTLs cannot be negative.")
        return v

    @field_validator("cleanup_interval")
    @classmethod
    def validate_cleanup_interval(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Cleanup interval must be at least 1 second.")
        return v

    @field_validator("memo_max_entries")
    @classmethod
    def validate_memo_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Memo cache must hold at least one entry.")
        return v

    @model_validator(mode="after")
    def validate_storage_limits(self) -> "ConverterConfig":
        """Checks that the tiers are sized consistently."""
        if self.primary_capacity_kb < 1 or self.primary_max_value_kb < 1:
            raise ValueError("Primary storage limits must be positive.")
        if self.primary_max_value_kb > self.primary_capacity_kb:
            raise ValueError(
                "primary_max_value_kb cannot exceed primary_capacity_kb."
            )
        if self.secondary_max_value_kb < self.primary_max_value_kb:
            raise ValueError(
                "The secondary tier must accept values at least as large as the "
                "primary tier."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"data_dir", "offline"}
        return {key for key in cls.model_fields if key not in internal_fields}
