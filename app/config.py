from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "BuildEx"
    debug: bool = False
    cors_origins: str = "*"  # comma-separated

    # Database (SQLite by default; set DATABASE_URL for PostgreSQL)
    database_url: str = "sqlite:///./buildex.db"

    # Email (for OTP delivery): if not set, the OTP is logged only
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: Optional[str] = None  # e.g. "BuildEx <noreply@yourdomain.com>"

    # OTP
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    otp_debug_log: bool = False  # also log OTPs that were delivered (local dev only)

    # 360 image proxy cache
    image_storage_dir: str = "uploads/360"
    image_serve_path: str = "/images/serve"
    image_fetch_timeout_seconds: float = 15.0
    image_fetch_max_attempts: int = 3
    image_fetch_backoff_seconds: float = 0.5  # doubled after every failed attempt

    class Config:
        env_file = ".env"

    @property
    def cors_origins_list(self) -> list:
        return [o.strip() for o in (self.cors_origins or "").split(",") if o.strip()]

    @property
    def smtp_configured(self) -> bool:
        return all([self.smtp_host, self.smtp_user, self.smtp_password])


settings = Settings()
