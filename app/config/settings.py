"""
Configuration settings for the shop orders backend.
Handles environment variables, gateway credentials and pricing constants.
"""
import os
from decimal import Decimal
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "SHOP-ORDERS"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: Optional[str] = None        # falls back to DEBUG/INFO from the DEBUG flag
    LOG_FORMAT: str = "json"               # json / console

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./orders.db")

    # JWT Settings (tokens are issued by the user service, we only decode them)
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"

    # Pricing
    CURRENCY: str = "inr"
    DELIVERY_CHARGE: Decimal = Decimal("10")
    PHONE_COUNTRY_CODE: str = "27"

    # Public URLs used to build gateway redirects
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://localhost:4000")

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "https://sandbox.payfast.co.za",
    ]

    # Stripe (hosted checkout)
    STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")

    # PayFast (regional redirect)
    PAYFAST_MERCHANT_ID: Optional[str] = os.getenv("PAYFAST_MERCHANT_ID")
    PAYFAST_MERCHANT_KEY: Optional[str] = os.getenv("PAYFAST_MERCHANT_KEY")
    PAYFAST_PASSPHRASE: Optional[str] = os.getenv("PAYFAST_PASSPHRASE")
    PAYFAST_BASE_URL: Optional[str] = os.getenv("PAYFAST_BASE_URL")

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def known_log_level(cls, v):
        if v is None or v == "":
            return None
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def known_log_format(cls, v):
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @field_validator("DELIVERY_CHARGE")
    @classmethod
    def non_negative_delivery(cls, v):
        if v < 0:
            raise ValueError("DELIVERY_CHARGE cannot be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


# Validation
def validate_settings(current: Settings = settings):
    """Validate critical settings"""
    issues = []

    if current.JWT_SECRET == "dev-secret-change-in-production":
        issues.append("JWT_SECRET must be set in production")

    if current.FRONTEND_URL.startswith("http://localhost"):
        issues.append("FRONTEND_URL must point at the public storefront")

    # Without a passphrase the ITN signature is an unkeyed digest
    if current.PAYFAST_MERCHANT_ID and not current.PAYFAST_PASSPHRASE:
        issues.append("PAYFAST_PASSPHRASE must be set when PayFast is enabled")

    if issues:
        raise ValueError(f"Configuration issues: {', '.join(issues)}")


# Auto-validate on import in production
if settings.ENVIRONMENT == "production":
    validate_settings()
