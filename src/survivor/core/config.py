from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./survivor.db"
    log_level: str = "INFO"
    sql_echo: bool = False

    # Order in which auto-assignment tries legal teams:
    # "team_id" = ascending team id, "lowest_ranked" = worst club in the real table first
    auto_pick_order: Literal["team_id", "lowest_ranked"] = "team_id"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SURVIVOR_",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
