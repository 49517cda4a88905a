from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUSINESS_NAME: str = "Your Business"
    BUSINESS_TIMEZONE: str = "America/New_York"
    BUSINESS_WORKING_DAYS: str = "mon,tue,wed,thu,fri"
    BUSINESS_DAY_START: str = "09:00"
    BUSINESS_DAY_END: str = "18:00"
    MIN_LEAD_MINUTES: int = 30
    SLOT_GRANULARITY_MINUTES: int = 30

    SERVICE_CATALOG_FILE: str | None = None

    STORE_PROVIDER: str = "memory"
    DATA_DIR: str = "./data/appointments"

    PENDING_HOLD_MINUTES: int = 10
    RESERVE_TIMEOUT_SECONDS: float = 5.0
    SESSION_IDLE_MINUTES: int = 30
    AVAILABILITY_MAX_DAYS: int = 31

    API_BASE_URL: str = "http://localhost:8000"
    EMBED_PRIMARY_COLOR: str = "#e45c2b"
    EMBED_LOGO_URL: str | None = None
    EMBED_SERVICE_IDS: str = ""
    EMBED_ALLOWED_DOMAINS: str = ""

    EVENT_WEBHOOK_URL: str | None = None
    EVENT_WEBHOOK_TIMEOUT_SECONDS: float = 10.0


settings = Settings()
