"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Literal, Optional


class TellerConfig(BaseSettings):
    """ATM teller simulator configuration"""
    
    # Database configuration
    database_path: str = "atm.db"
    
    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_format: Literal["json", "text"] = "json"
    log_file: Optional[str] = None  # If None, logs to stderr
    
    # Amount handling
    amount_precision: int = 2
    currency_symbol: str = "$"
    
    class Config:
        env_prefix = "ATM_"
        env_file = ".env"
        case_sensitive = False

    @field_validator("log_level", "log_format", mode="before")
    @classmethod
    def _normalize_case(cls, value, info):
        if isinstance(value, str):
            return value.upper() if info.field_name == "log_level" else value.lower()
        return value


# Global configuration instance
config = TellerConfig()


def get_config() -> TellerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TellerConfig:
    """Reload configuration from environment"""
    global config
    config = TellerConfig()
    return config
