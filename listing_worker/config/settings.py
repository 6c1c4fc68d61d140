from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "listings"
    db_username: str = "listings"
    db_password: str = "secret"

    task_timeout_seconds: int = 600
    task_poll_interval_seconds: int = 5
    max_concurrent_tasks: int = 4

    stage_max_retries: int = 3
    stage_backoff_base_seconds: float = 2.0
    stage_backoff_max_seconds: float = 10.0

    inference_provider: str = "openai"
    inference_api_key: str = ""
    inference_model_name: str = "gpt-5-mini"
    inference_timeout_seconds: int = 180
    inference_base_url: str | None = None
    inference_max_output_tokens: int = 8000

    # Business tuning values of the quality model.
    fill_rate_threshold: int = 60
    description_min_length: int = 1300
    description_max_length: int = 2000
    title_max_length: int = 60
    catalog_confidence: float = 0.95
    freeform_confidence: float = 0.85
    catalog_excluded_attribute_ids: list[int] = []
