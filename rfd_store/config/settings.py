from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field

# Load .env file from the working directory
load_dotenv()


class Settings(BaseSettings):
    """Base settings for the RFD record store."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "RFD Record Store"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Durable, uniquely-keyed storage for Request for Discussion records"

    DATABASE_URL: str = ""
    LOCAL_SQLITE_PATH: str = "sqlite+aiosqlite:///./rfds.db"
    DATABASE_SSL: bool = Field(default=False, description="Open asyncpg connections over TLS")
    DB_POOL_SIZE: int = Field(default=20, ge=1)
    DB_ECHO: bool = False

    # Rows fetched per round-trip when iterating a listing
    RFD_LIST_BATCH_SIZE: int = Field(default=100, ge=1)

    LOG_LEVEL: str = "INFO"
    LOGS_DIR: str = "logs"

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """Resolve the database URL for the application.

        Priority:
        1. Explicit DATABASE_URL (Postgres, SQLite, etc.)
        2. Local SQLite fallback for development: LOCAL_SQLITE_PATH
        """
        if self.DATABASE_URL and self.DATABASE_URL.strip():
            return self.DATABASE_URL.strip()
        if self.LOCAL_SQLITE_PATH and self.LOCAL_SQLITE_PATH.strip():
            return self.LOCAL_SQLITE_PATH.strip()
        return "sqlite+aiosqlite:///./rfds.db"


settings = Settings()
