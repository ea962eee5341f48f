import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None)

    env: str = os.getenv("ENV", "unit-test")
    database_url: str = "sqlite+aiosqlite:///./tracker.db"
    sql_echo: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]
    host: str = "0.0.0.0"
    port: int = 8000

    # eventi di dominio: vuoto = publisher disattivato
    rabbitmq_url: str = ""
    events_exchange: str = "tracker.events"

    s3_endpoint_url: str = "http://minio:9000"
    s3_bucket: str = "submissions"
    s3_access_key_id: str = "minioadmin"
    s3_secret_access_key: str = "minioadmin"
    s3_region: str = "us-east-1"
    default_content_type: str = "application/pdf"

    fanout_batch_size: int = 20
    login_normalize_email: bool = False

    # coorte assegnata agli studenti importati da CSV
    import_semester: int = 6
    import_year: str = "TE"
    import_division: str = "B"
    import_academic_year: str = "2024-2025"

settings = Settings()
