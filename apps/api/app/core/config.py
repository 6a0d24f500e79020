"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.03.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str
    DB_AUTO_MIGRATE: bool = False

    # Inspection write transaction bounds (milliseconds)
    INSPECTION_TX_MAX_WAIT_MS: int = 10000  # lock acquisition
    INSPECTION_TX_TIMEOUT_MS: int = 15000  # statement execution

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # Email domains promoted to ADMIN on first login (comma-separated)
    ADMIN_EMAIL_DOMAINS: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (for links in notifications)
    FRONTEND_URL: str = "http://localhost:3000"

    # Blob storage: local | s3 | azure | custom
    STORAGE_TYPE: str = "local"
    STORAGE_PATH: str = "inspecoes"  # Key prefix inside the backend
    STORAGE_ENDPOINT: str = ""
    STORAGE_BUCKET: str = ""
    STORAGE_ACCESS_KEY: str = ""  # S3 key id / Azure connection string / bearer token
    STORAGE_SECRET_KEY: str = ""
    STORAGE_REGION: str = "us-east-1"
    STORAGE_BASE_URL: str = ""  # Public URL prefix, optional
    LOCAL_STORAGE_PATH: str = "/tmp/inspection-uploads"

    # Image uploads
    UPLOAD_MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB
    UPLOAD_MAX_DIMENSION: int = 1920
    UPLOAD_JPEG_QUALITY: int = 85

    # Submission notification (Power Automate style webhook)
    NOTIFICATION_WEBHOOK_URL: str = ""
    NOTIFICATION_EMAIL_TO: str = ""
    NOTIFICATION_EMAIL_CC: str = ""
    NOTIFICATION_EMAIL_SUBJECT: str = "Nova inspeção de segurança registrada"
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_UPLOAD: int = 30
    RATE_LIMIT_API: int = 120  # General API

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_domains_list(self) -> list[str]:
        """Parse ADMIN_EMAIL_DOMAINS into lowercase list."""
        if not self.ADMIN_EMAIL_DOMAINS:
            return []
        return [d.strip().lower() for d in self.ADMIN_EMAIL_DOMAINS.split(",") if d.strip()]

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
