"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class BankConfig(BaseSettings):
    """Branch banking ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="BANK_",
        env_file=".env",
        case_sensitive=False,
    )

    # Business rules configuration
    default_currency: str = "GBP"
    first_account_number: int = 10001
    savings_max_withdrawals: int = 4  # Per withdrawal period (calendar year)
    interest_days_per_year: int = 365

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Feature flags
    enable_audit_logging: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    admin_api_key: str = ""  # Empty disables the admin endpoints


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
