from pydantic_settings import BaseSettings
from typing import Optional
from pydantic import Field

class Settings(BaseSettings):
    DATABASE_URL: str = Field("sqlite+aiosqlite:///./staffscore.db")
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = Field(False)

    LOG_LEVEL: str = Field("INFO")

    # Monthly snapshot job
    SNAPSHOT_MAX_CONCURRENCY: int = Field(2, ge=1)
    SNAPSHOT_COMPANY_TIMEOUT_SECONDS: float = Field(120.0, gt=0)

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        """
        Returns the async driver URL:
          - postgresql:// → postgresql+asyncpg://
          - anything else is used as-is
        """
        db_url = self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL
        if db_url.startswith("postgresql://") and "+asyncpg" not in db_url:
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return db_url

settings = Settings()
