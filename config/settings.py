"""
TradeCockpit Configuration Management

Pydantic-based settings with environment variable support for logging,
risk parameters, account seed balances, the quote feed and the market session.
"""

from datetime import time
from enum import Enum
from typing import Dict, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Risk percent choices offered to the operator
RISK_OPTIONS = (0.5, 1.0, 1.5, 2.0)


class Environment(str, Enum):
    """Environment types for deployment configuration."""
    LOCAL = "local"
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels for application output."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """
    TradeCockpit application settings with validation.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = "TradeCockpit"
    version: str = "1.0.0"
    environment: Environment = Environment.LOCAL
    debug: bool = False

    # Logging Configuration
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_file_path: str = "logs/tradecockpit.log"
    log_json_format: bool = False
    log_rotation_size: str = "10 MB"
    log_retention_days: int = Field(default=30, ge=1, le=365)
    log_compression: str = "zip"

    # Risk Configuration
    risk_percent: float = Field(
        default=1.0,
        description="Percent of an account balance risked per new position"
    )
    initial_stop_pct: float = Field(
        default=0.10,
        gt=0.0,
        lt=1.0,
        description="Initial stop distance below entry as decimal (0.10 = 10%)"
    )
    breakeven_trigger_pct: float = Field(
        default=7.0,
        gt=0.0,
        le=100.0,
        description="Gain percent at which the stop moves to breakeven"
    )
    elevated_risk_threshold: float = Field(
        default=5.0,
        gt=0.0,
        le=100.0,
        description="Risk percent of balance above which risk is flagged elevated"
    )

    # Accounts
    account_balances: Dict[str, float] = Field(
        default_factory=lambda: {"ira": 42000.0, "tasty": 28000.0, "inherited": 24000.0}
    )

    # Quote Feed
    quote_api_url: str = "http://localhost:3000/api/quotes"
    quote_timeout: float = Field(default=10.0, gt=0.0, le=120.0)
    quote_refresh_interval: int = Field(
        default=60,
        ge=5,
        le=3600,
        description="Quote refresh cadence in seconds"
    )

    # Market Session
    market_open: time = time(9, 30)
    market_close: time = time(16, 0)
    market_timezone: Optional[str] = None

    @field_validator('risk_percent')
    @classmethod
    def validate_risk_percent(cls, v):
        """Restrict risk percent to the offered choices."""
        if v not in RISK_OPTIONS:
            raise ValueError(f'risk_percent must be one of {RISK_OPTIONS}')
        return v

    @field_validator('account_balances')
    @classmethod
    def validate_account_balances(cls, v):
        """Balances are cash amounts and cannot be negative."""
        for account_id, balance in v.items():
            if balance < 0:
                raise ValueError(f'Balance for {account_id} cannot be negative')
        return v

    @field_validator('quote_api_url')
    @classmethod
    def validate_quote_api_url(cls, v):
        """Validate quote endpoint URL scheme."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Quote API URL must start with http:// or https://')
        return v

    @model_validator(mode='after')
    def validate_market_session(self):
        """The session window must open before it closes."""
        if self.market_open >= self.market_close:
            raise ValueError('market_open must be earlier than market_close')
        return self

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Configured application settings
    """
    return settings

