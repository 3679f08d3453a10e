from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = []
    frontend_url: str  # URL embedded in emailed action links, e.g. https://app.example.com
    session_ttl_days: int = 2
    session_ip_binding: bool = True  # Require the validating request to come from the session's IP
    change_link_ttl_hours: int = 24
    reset_link_ttl_hours: int = 48
    profile_feed_buffer: int = 32  # Max undelivered events per profile stream
    smtp_host: str | None = None  # Mail is dropped (logged only) when unset
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = True
    mail_from: str = "no-reply@keyward.local"
    templates_path: str | None = None  # Defaults to the bundled email templates
    admin_email: str | None = None
    admin_password: str | None = None

    model_config = {
        "env_file": [".env"],
        "env_prefix": "KEYWARD_",
        "extra": "ignore",
    }
