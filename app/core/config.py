from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "TourismHub API"
    # Comma-separated origins for CORS (e.g. https://tourismhub.example,https://admin.tourismhub.example). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    DATABASE_URL: str = "sqlite:///./tourismhub.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Activity status sweep
    ACTIVITY_SWEEP_INTERVAL_SECONDS: int = 300
    RUN_INPROCESS_SWEEPER: bool = False  # True = API process schedules the sweep itself (no Celery beat)

    # Payment gateway callbacks (HMAC-SHA256 of the body). Empty disables the webhook.
    PAYMENT_WEBHOOK_SECRET: str = ""


settings = Settings()
