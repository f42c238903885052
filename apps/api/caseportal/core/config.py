"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./caseportal.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24

    # Google sign-in
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/auth/google/callback"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (links in emails, safe redirects)
    FRONTEND_URL: str = "http://localhost:3000"
    DEFAULT_LOCALE: str = "en"

    # Transactional email (Brevo)
    BREVO_API_KEY: str = ""
    FROM_EMAIL: str = "noreply@caseportal.local"
    FROM_NAME: str = "Case Portal"
    NOTIFICATION_EMAIL: str = "team@caseportal.local"

    # reCAPTCHA (verification is skipped when unset)
    RECAPTCHA_SECRET_KEY: str = ""

    # File storage
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "uploads"
    S3_BUCKET: str = "caseportal-uploads"
    S3_REGION: str = "us-east-1"
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_AUTH: int = 5
    RATE_LIMIT_PUBLIC: int = 10
    RATE_LIMIT_API: int = 120

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
