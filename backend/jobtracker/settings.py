# backend/jobtracker/settings.py
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # DB
    database_url: str = "sqlite+aiosqlite:///./jobtracker.db"

    # Format-tagg som skrivs i varje export
    snapshot_version: str = "1.0"

    # App
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "JOBTRACKER_"

settings = Settings()
