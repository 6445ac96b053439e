from __future__ import annotations

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_POINTS_SCHEDULE = {1: 25, 2: 18, 3: 15, 4: 12, 5: 10, 6: 8, 7: 6, 8: 4, 9: 2, 10: 1}
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./championship.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    points_schedule: dict[int, int] = DEFAULT_POINTS_SCHEDULE
    default_country: str = "JPN"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHAMPIONSHIP_",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
