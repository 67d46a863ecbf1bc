from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv(".env.local")

class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    DATABASE_URL: str | None = None
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT_SEC: float = 10.0
    # Every store call runs under these server-side bounds.
    STATEMENT_TIMEOUT_MS: int = 5000
    LOCK_TIMEOUT_MS: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None
    SEARCH_LIMIT_MAX: int = 100

settings = Settings()
