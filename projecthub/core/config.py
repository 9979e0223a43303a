"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./projecthub.db"

    # Frontend (target links in notification emails)
    FRONTEND_URL: str = "http://localhost:3000"
    APP_NAME: str = "ProjectHub"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Transactional email (Resend). Email is skipped when the key is empty.
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "onboarding@resend.dev"
    EMAIL_SEND_TIMEOUT_SECONDS: float = 30.0

    # Attachments uploaded by a comment's author within this many seconds of
    # the comment are shown with it.
    ATTACHMENT_COMMENT_WINDOW_SECONDS: int = 30

    # Read notifications older than this are removed by the cleanup job
    READ_NOTIFICATION_RETENTION_DAYS: int = 30

    # Internal scheduled endpoints (cron jobs)
    CRON_SECRET: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)


settings = Settings()
