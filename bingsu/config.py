"""Configuration management for the bingsu shop service."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    redis_key_prefix: str = Field(
        default="bingsu", description="Namespace prepended to every store key"
    )

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Menu Code Settings
    menu_code_ttl_hours: float = Field(
        default=24.0, description="Hours a freshly issued menu code stays valid"
    )
    menu_code_max_usage: int = Field(default=5, description="Orders allowed per code")
    code_generation_max_attempts: int = Field(
        default=100, description="Collision retries before giving up on a code"
    )

    # Pricing Settings
    base_price: int = Field(default=60, description="Base price of any cup")
    size_surcharges: dict[str, int] = Field(
        default_factory=lambda: {"S": 0, "M": 10, "L": 20},
        description="Surcharge per cup size",
    )
    topping_price: int = Field(default=10, description="Price per topping")
    max_toppings: int = Field(default=3, description="Max toppings per order")
    special_instructions_max_length: int = Field(default=200)

    # Loyalty Settings
    loyalty_stamp_threshold: int = Field(
        default=10, description="Stamps needed for a free order"
    )
    loyalty_points_divisor: int = Field(
        default=10, description="Order total units per reward point"
    )

    # Review Settings
    review_comment_max_length: int = Field(default=500)

    # Stock Settings
    default_reorder_threshold: int = Field(
        default=20, description="Reorder threshold for newly created stock items"
    )
    stock_unit: str = Field(default="cups")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @field_validator("size_surcharges")
    @classmethod
    def validate_size_surcharges(cls, v: dict[str, int]) -> dict[str, int]:
        """Every cup size needs a surcharge entry."""
        missing = {"S", "M", "L"} - set(v)
        if missing:
            raise ValueError(f"Missing surcharge for sizes: {sorted(missing)}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
