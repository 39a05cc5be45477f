# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (SQLAlchemy URL, e.g. postgresql+psycopg2://...)
      - JWT_SECRET (shared secret used to sign auth tokens)

    Optional:
      - RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET (payments are disabled without both)
      - RAZORPAY_WEBHOOK_SECRET (webhooks are rejected without it)
      - ADMIN_WHATSAPP / NTFY_TOPIC (admin order notifications)
      - SMTP_* (customer order emails are skipped without host and login)
    """

    PROJECT_NAME: str = "Storefront API"
    API_V1_STR: str = "/api"

    # "development" exposes internal error messages in responses
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    # JWT verification (tokens are issued by the identity provider)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24 * 7
    AUTH_COOKIE_NAME: str = "auth-token"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Checkout pricing
    ORDER_NUMBER_PREFIX: str = "ANV"
    FREE_SHIPPING_THRESHOLD: float = 999.0
    SHIPPING_FLAT_RATE: float = 99.0
    TAX_RATE: float = 0.0
    ESTIMATED_DELIVERY_DAYS: int = 7

    # Payment gateway
    RAZORPAY_KEY_ID: str | None = None
    RAZORPAY_KEY_SECRET: str | None = None
    RAZORPAY_WEBHOOK_SECRET: str | None = None
    RAZORPAY_API_BASE: str = "https://api.razorpay.com/v1"
    GATEWAY_TIMEOUT_SECONDS: float = 10.0

    # Notifications
    NOTIFICATIONS_ENABLED: bool = True
    ADMIN_WHATSAPP: str = "916304742807"
    NTFY_TOPIC: str | None = None
    NTFY_BASE_URL: str = "https://ntfy.sh"
    NOTIFY_TIMEOUT_SECONDS: float = 5.0

    # Customer email (SMTP)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Anvima Creations"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SECONDS: float = 30.0

    # Invoice header
    COMPANY_NAME: str = "Anvima Creations"
    COMPANY_ADDRESS: str = "Hyderabad, Telangana, India"
    COMPANY_PHONE: str = "+91 6304742807"
    COMPANY_EMAIL: str = "anvima.creations@gmail.com"
    COMPANY_GSTIN: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def payments_enabled(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
