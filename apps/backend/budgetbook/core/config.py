from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "Budgetbook Backend"
    ENV: str = "dev"

    # SQLite file next to apps/backend so the CWD does not matter
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"
    SQL_ECHO: bool = False

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "Europe/Rome"

    # Day of month a budget period rolls over when the user has not chosen one (1-28)
    DEFAULT_BUDGET_START_DAY: int = 1

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="BUDGETBOOK_", case_sensitive=False)


settings = Settings()
