# ==================================================================================
# core/config.py: ProjeX configuration (Stripe + SendGrid + Google + Pydantic v2)
# ==================================================================================
import logging
import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: Optional[str] = None

    # ------------------------
    # SECURITY CONFIG
    # ------------------------
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    PASSWORD_SETUP_EXPIRE_HOURS: int = 24
    OTP_EXPIRE_SECONDS: int = 600
    PENDING_SIGNUP_EXPIRE_MINUTES: int = 60

    # ------------------------
    # SENDGRID EMAIL CONFIG
    # ------------------------
    SENDGRID_API_KEY: Optional[str] = None
    MAIL_FROM: Optional[str] = None

    # ------------------------
    # FRONTEND CONFIG (CORS + email links)
    # ------------------------
    FRONTEND_URL: str = "http://localhost:5173"

    # ------------------------
    # GOOGLE OAUTH CONFIG
    # ------------------------
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    # Defaults to this API's /api/auth/google/callback URL
    GOOGLE_CALLBACK_URL: Optional[str] = None

    # ------------------------
    # STRIPE / PAYMENT CONFIG
    # ------------------------
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_BASIC: str = "price_basic"
    STRIPE_PRICE_PRO: str = "price_pro"
    STRIPE_PRICE_BUSINESS: str = "price_business"

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True

    @property
    def IS_PRODUCTION(self) -> bool:
        """Convenience helper to check if running in production"""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def PLAN_PRICE_MAP(self) -> dict:
        """Stripe price id for each plan tier."""
        return {
            "basic": self.STRIPE_PRICE_BASIC,
            "pro": self.STRIPE_PRICE_PRO,
            "business": self.STRIPE_PRICE_BUSINESS,
        }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# ------------------------
# Global Settings Loader
# ------------------------
def load_settings() -> Settings:
    """Build Settings from the environment; exit(1) when it is missing or invalid."""
    try:
        loaded = Settings()
    except ValidationError as e:
        logger.error("❌ Environment configuration error, missing or invalid settings: %s", e)
        sys.exit(1)
    logger.info("✅ Environment variables loaded (environment=%s, debug=%s)", loaded.ENVIRONMENT, loaded.DEBUG)
    return loaded


settings = load_settings()
