"""
Centralized application configuration.

This module loads every environment variable and setting the order editor
needs, using Pydantic Settings for automatic validation.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration backed by Pydantic Settings.

    Every value is read from environment variables, with defaults suited
    to local development.
    """

    # === BASIC APP CONFIGURATION ===
    APP_NAME: str = "FBR Order Editor"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=True, env="DEBUG")

    # === SERVER CONFIGURATION ===
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8080, env="PORT")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # === SECURITY CONFIGURATION ===
    ALLOWED_HOSTS: Optional[List[str]] = Field(default=None, env="ALLOWED_HOSTS")

    # === BACKEND API (orders, catalog, customers, settings, FBR proxy) ===
    BACKEND_API_URL: str = Field(default="http://localhost:3000/api", env="BACKEND_API_URL")
    BACKEND_API_TOKEN: Optional[str] = Field(default=None, env="BACKEND_API_TOKEN")
    BACKEND_TIMEOUT_SECONDS: int = Field(default=30, env="BACKEND_TIMEOUT_SECONDS")
    BACKEND_CONNECT_TIMEOUT_SECONDS: int = Field(default=10, env="BACKEND_CONNECT_TIMEOUT_SECONDS")
    BACKEND_MAX_RETRIES: int = Field(default=3, env="BACKEND_MAX_RETRIES")

    # === PRICING ===
    DEFAULT_CURRENCY: str = Field(default="PKR", env="DEFAULT_CURRENCY")
    # Cooperative delay before a computed tax amount is reported (0 = synchronous)
    TAX_CALCULATION_DELAY_MS: int = Field(default=0, env="TAX_CALCULATION_DELAY_MS")

    # === LOYALTY DEFAULTS (used when /settings/loyalty is missing a value) ===
    LOYALTY_REDEMPTION_VALUE: Decimal = Field(default=Decimal("0.01"), env="LOYALTY_REDEMPTION_VALUE")
    LOYALTY_MAX_REDEMPTION_PERCENT: Decimal = Field(default=Decimal("50"), env="LOYALTY_MAX_REDEMPTION_PERCENT")
    LOYALTY_REDEMPTION_MINIMUM: int = Field(default=100, env="LOYALTY_REDEMPTION_MINIMUM")
    LOYALTY_EARNING_RATE: Decimal = Field(default=Decimal("1"), env="LOYALTY_EARNING_RATE")

    # === FBR DEFAULTS ===
    FBR_DEFAULT_SCENARIO_ID: str = Field(default="SN001", env="FBR_DEFAULT_SCENARIO_ID")
    FBR_DEFAULT_HS_CODE: str = Field(default="2710.1991", env="FBR_DEFAULT_HS_CODE")
    FBR_SERVICES_HS_CODE: str = Field(default="9805.9200", env="FBR_SERVICES_HS_CODE")
    FBR_DEFAULT_SALE_TYPE: str = Field(default="Goods at standard rate", env="FBR_DEFAULT_SALE_TYPE")
    FBR_DEFAULT_BUYER_NTN_CNIC: str = Field(default="1234567890123", env="FBR_DEFAULT_BUYER_NTN_CNIC")
    FBR_DEFAULT_PROVINCE: str = Field(default="Punjab", env="FBR_DEFAULT_PROVINCE")
    FBR_SELLER_NTN_CNIC: str = Field(default="", env="FBR_SELLER_NTN_CNIC")
    FBR_SELLER_BUSINESS_NAME: str = Field(default="", env="FBR_SELLER_BUSINESS_NAME")
    FBR_SELLER_PROVINCE: str = Field(default="Punjab", env="FBR_SELLER_PROVINCE")
    FBR_SELLER_ADDRESS: str = Field(default="", env="FBR_SELLER_ADDRESS")

    # === LOGGING CONFIGURATION ===
    LOG_FILE_PATH: Optional[str] = Field(default="logs/app.log", env="LOG_FILE_PATH")
    LOG_MAX_SIZE_MB: int = Field(default=10, env="LOG_MAX_SIZE_MB")
    LOG_BACKUP_COUNT: int = Field(default=5, env="LOG_BACKUP_COUNT")
    LOG_FORMAT: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", env="LOG_FORMAT")

    # === MONITORING ===
    SLOW_REQUEST_THRESHOLD: float = Field(default=5.0, env="SLOW_REQUEST_THRESHOLD")

    # === DOCUMENTATION ===
    ENABLE_DOCS: bool = Field(default=True, env="ENABLE_DOCS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parse ALLOWED_HOSTS as a comma separated list."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("BACKEND_API_URL")
    @classmethod
    def validate_backend_url(cls, v):
        """Require an http(s) base URL and drop the trailing slash."""
        if not v.startswith("https://") and not v.startswith("http://"):
            raise ValueError("BACKEND_API_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("DEFAULT_CURRENCY")
    @classmethod
    def validate_currency(cls, v):
        """Currency must be a 3-letter ISO code."""
        if len(v) != 3:
            raise ValueError("DEFAULT_CURRENCY must be a 3-letter ISO code")
        return v.upper()

    @field_validator("TAX_CALCULATION_DELAY_MS", "BACKEND_MAX_RETRIES")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("value cannot be negative")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate the log level name."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate the environment name."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        """Validate the port range."""
        if not 1 <= v <= 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @property
    def is_production(self) -> bool:
        """True when running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """True when running in development."""
        return self.ENVIRONMENT == "development"

    @property
    def tax_calculation_delay_seconds(self) -> float:
        return self.TAX_CALCULATION_DELAY_MS / 1000

    def get_backend_headers(self) -> dict:
        """
        Build the headers sent with every backend API request.

        Returns:
            dict: Authentication and content headers
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{self.APP_NAME}/{self.APP_VERSION}",
        }
        if self.BACKEND_API_TOKEN:
            headers["Authorization"] = f"Bearer {self.BACKEND_API_TOKEN}"
        return headers


@lru_cache()
def get_settings() -> Settings:
    """
    Return the singleton configuration instance.

    The LRU cache avoids rebuilding the settings on every call.

    Returns:
        Settings: Configuration instance
    """
    return Settings()


# Global instance for direct use
settings = get_settings()


def reload_settings() -> Settings:
    """
    Reload configuration (useful for testing).

    Returns:
        Settings: New configuration instance
    """
    get_settings.cache_clear()
    return get_settings()


def get_environment_info() -> dict:
    """
    Describe the current environment.

    Returns:
        dict: Environment information
    """
    settings = get_settings()

    return {
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "is_production": settings.is_production,
        "is_development": settings.is_development,
        "host": settings.HOST,
        "port": settings.PORT,
        "log_level": settings.LOG_LEVEL,
        "backend_api_url": settings.BACKEND_API_URL,
        "features": {
            "docs": settings.ENABLE_DOCS,
            "async_tax_calculation": settings.TAX_CALCULATION_DELAY_MS > 0,
            "backend_auth": bool(settings.BACKEND_API_TOKEN),
        },
    }
