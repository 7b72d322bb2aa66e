from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False

    # App
    APP_NAME: str = "formreg"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8080
    CORS_ORIGINS: str = ""  # comma-separated; empty allows every origin

    # OTP lifecycle
    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 600
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 900
    OTP_MAX_PER_WINDOW: int = 5
    OTP_MIN_RESEND_INTERVAL_SECONDS: int = 60

    # Email delivery
    EMAIL_PROVIDER: Literal["smtp", "sendgrid", "console"] = "smtp"
    EMAIL_FROM: str = "no-reply@example.com"
    EMAIL_BRAND: str = "Empresario"
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 465
    SMTP_SECURE: bool = True  # implicit TLS; False means plain + STARTTLS
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SENDGRID_API_KEY: str | None = None

    # Google Sheets
    SPREADSHEET_ID: str | None = None
    SHEET_NAME: str = "Submissions"
    GOOGLE_CREDENTIALS_JSON_BASE64: str | None = None  # falls back to GOOGLE_APPLICATION_CREDENTIALS

    # Logging / Observability
    LOG_LEVEL: str = "INFO"
    REQUEST_ID_HEADER: str = "X-Request-ID"

    @field_validator("OTP_LENGTH", "OTP_MAX_PER_WINDOW")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("OTP_TTL_SECONDS", "OTP_RATE_LIMIT_WINDOW_SECONDS", "OTP_MIN_RESEND_INTERVAL_SECONDS")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


def get_settings() -> Settings:
    # slightly faster singleton
    global _SETTINGS_SINGLETON
    try:
        return _SETTINGS_SINGLETON  # type: ignore[name-defined]
    except NameError:
        _SETTINGS_SINGLETON = Settings()  # type: ignore[assignment]
        return _SETTINGS_SINGLETON
