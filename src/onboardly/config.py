from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = []
    # Access credential signing
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "onboardly"
    jwt_audience: str = "onboardly-frontend"
    access_token_ttl_minutes: int = 15
    # Bearer secret lifetimes
    magic_link_ttl_hours: int = 24
    session_ttl_days: int = 30
    cookie_secure: bool = True  # Disable only for local HTTP development
    expose_magic_link_token: bool = False  # Echo the link token in the response (no email channel in dev)
    conceal_unknown_emails: bool = False  # Answer link requests for unknown emails like known ones
    cleanup_interval_seconds: int = 3600  # 0 disables the background sweeper
    rate_limit_max_requests: int = 5  # Magic link requests per email per window, 0 disables
    rate_limit_window_seconds: int = 900
    # Optional first tenant and admin created on startup
    bootstrap_domain: str | None = None
    bootstrap_tenant_name: str | None = None
    bootstrap_admin_email: str | None = None

    model_config = {
        "env_file": [".env"],
        "env_prefix": "ONBOARDLY_",
        "extra": "ignore",
    }
