"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Persistence: "memory" | "sql" | "rest"
    store_backend: str = "memory"
    database_url: str = "sqlite:///./prime_ledger.db"

    # Hosted backend (data + auth)
    store_api_base: str = "http://localhost:54321"
    store_api_key: str = ""
    auth_api_base: str = "http://localhost:54321"

    # Demo session used by the in-memory backend
    demo_user_id: str | None = "demo-user"
    demo_user_email: str = "demo@prime.local"
    seed_demo_accounts: bool = True

    # Service
    service_name: str = "prime-ledger"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0


settings = Settings()
