"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./checkout.db"
    log_level: str = "INFO"

    # Public base URLs used to build gateway callback / redirect targets
    backend_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:3000"
    currency: str = "INR"

    mock_failure_rate: float = 0.05  # 5% simulated gateway failure rate
    mock_latency_ms: int = 100  # Simulated gateway latency

    gateway_max_retries: int = 2
    gateway_retry_base_delay: float = 0.5
    gateway_timeout_seconds: float = 10.0

    reconcile_max_attempts: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
