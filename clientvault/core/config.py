# clientvault/core/config.py
from typing import Optional
from pathlib import Path
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the .env file relative to the project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), extra="ignore")

    # Application
    PROJECT_NAME: str = "ClientVault"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
    )
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Encryption
    ENCRYPTION_KEY: Optional[str] = None
    # Use a fixed development placeholder instead of a random one so local
    # data survives restarts. Ignored when ENCRYPTION_KEY is set.
    ENCRYPTION_STABLE_DEV_KEY: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./clientvault.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
