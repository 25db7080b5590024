from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from typing import List
import json


class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Eventhub Ticketing API"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Razorpay
    RAZORPAY_KEY_ID: str
    RAZORPAY_KEY_SECRET: str
    RAZORPAY_WEBHOOK_SECRET: str

    # Checkout
    PAYMENT_CURRENCY: str = "INR"
    PROCESSING_FEE_PERCENT: float = Field(default=2.0, ge=0, le=100)
    NEW_USER_WINDOW_DAYS: int = Field(default=7, ge=0)

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Environment
    ENVIRONMENT: str = "development"

    DEBUG: bool = False

    # Frontend
    FRONTEND_URL: str = "http://localhost:5173"
    ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    # Monitoring (Optional - Add to .env for production)
    SENTRY_DSN: str = ""  # Optional: Sentry error tracking DSN

    # Bootstrap
    DEFAULT_ADMIN_EXTERNAL_ID: str = ""
    DEFAULT_ADMIN_EMAIL: str = "admin@eventhub.local"

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @field_validator("PAYMENT_CURRENCY")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        currency = value.upper().strip()
        if len(currency) != 3:
            raise ValueError("PAYMENT_CURRENCY must be a 3-letter ISO code")
        return currency

    @classmethod
    def _parse_host_list(cls, value) -> List[str]:
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return [str(host).strip() for host in parsed if str(host).strip()]
                except json.JSONDecodeError as exc:
                    raise ValueError("ALLOWED_HOSTS must be valid JSON or comma-separated hosts") from exc
            return [host.strip() for host in raw.split(",") if host.strip()]
        if isinstance(value, list):
            return [str(host).strip() for host in value if str(host).strip()]
        return value

    @model_validator(mode="after")
    def validate_production_secrets(self):
        if self.ENVIRONMENT == "production":
            normalized_secret = (self.SECRET_KEY or "").strip()
            if len(normalized_secret) < 32 or "your-secret-key-here" in normalized_secret.lower():
                raise ValueError("SECRET_KEY must be at least 32 chars and not use placeholders in production")
            if (self.RAZORPAY_KEY_ID or "").startswith("rzp_test_"):
                raise ValueError("RAZORPAY_KEY_ID must use live key in production")
            if not self.RAZORPAY_WEBHOOK_SECRET.strip():
                raise ValueError("RAZORPAY_WEBHOOK_SECRET must be set in production")
        return self

    @property
    def allowed_hosts(self) -> List[str]:
        return self._parse_host_list(self.ALLOWED_HOSTS)

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
