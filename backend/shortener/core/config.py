from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from shortener.core.environment import env


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=env.env_file, env_file_encoding="utf-8", extra="ignore")

    # Direct URL fallback
    database_url: str = Field(
        default="sqlite:///./data/shortener.db",
        validation_alias="DATABASE_URL",
    )

    # Deployment-wide policy; callers may override per request
    normalization_policy: str = Field(default="AGGRESSIVE", validation_alias="NORMALIZATION_POLICY")
    base_url: str = Field(default="http://localhost:8000/r/", validation_alias="BASE_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    cors_allow_origins: list[str] | str = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        validation_alias="CORS_ALLOW_ORIGINS",
    )


def _build_database_url_from_parts() -> Optional[str]:
    """Build a URL from DB_DRIVER, DB_HOST, DB_NAME and friends, if set."""
    driver = env.get("DB_DRIVER")
    user = env.get("DB_USER")
    password = env.get("DB_PASSWORD")
    host = env.get("DB_HOST")
    port = env.get("DB_PORT")
    name = env.get("DB_NAME")

    if not driver or not name:
        return None

    if driver.startswith("sqlite"):
        # Allow file path style for sqlite (e.g., DB_NAME=./data/dev.db)
        return f"sqlite:///{name}"

    if not host:
        return None

    auth = ""
    if user:
        auth = user
        if password:
            auth += f":{password}"
        auth += "@"

    port_part = f":{port}" if port else ""
    return f"{driver}://{auth}{host}{port_part}/{name}"


settings = Settings()

if isinstance(settings.cors_allow_origins, str):
    settings.cors_allow_origins = [
        o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()
    ]

# Priority: DB_* vars > DATABASE_URL
_db_url_from_parts = _build_database_url_from_parts()
if _db_url_from_parts:
    settings.database_url = _db_url_from_parts

# Normalize CORS origins: drop trailing slashes and whitespace
settings.cors_allow_origins = [o.rstrip("/") for o in settings.cors_allow_origins]

if not settings.base_url.endswith("/"):
    settings.base_url += "/"
