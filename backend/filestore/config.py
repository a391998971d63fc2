"""Store configuration from environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env.backend file."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./backend/data/filestore.db"
    STORE_NAME: str = "filestore"
    DB_ECHO: bool = False
    DB_BUSY_TIMEOUT_MS: int = 5000

    # Where export_file() writes downloads when no directory is given
    EXPORT_PATH: str = "./backend/downloads"
    DEFAULT_MIME_TYPE: str = "application/octet-stream"

    class Config:
        env_file = ".env.backend"
        env_file_encoding = "utf-8"


settings = Settings()
