import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict
from sqlalchemy.engine import URL

# Values already present in the environment win over the .env file
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    value = os.environ.get(name, default)
    return [item.strip() for item in value.split(",") if item.strip()]


def build_database_url(
    host: str,
    port: int,
    user: str,
    password: str,
    database: str,
) -> str:
    """
    Build an asyncpg connection URL from discrete connection settings.
    Credentials are escaped by SQLAlchemy.
    """
    url = URL.create(
        drivername="postgresql+asyncpg",
        username=user,
        password=password,
        host=host,
        port=port,
        database=database,
    )
    return url.render_as_string(hide_password=False)


class Settings(BaseModel):
    """
    Runtime settings read from the environment.
    """

    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_echo: bool = False
    cors_allowed_origins: List[str] = ["http://localhost:3000"]
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> "Settings":
        database_url: Optional[str] = os.environ.get("DATABASE_URL")
        if not database_url:
            database_url = build_database_url(
                host=os.environ.get("DB_HOST", "localhost"),
                port=int(os.environ.get("DB_PORT", "5432")),
                user=os.environ.get("DB_USER", "postgres"),
                password=os.environ.get("DB_PASSWORD", "postgres"),
                database=os.environ.get("DB_NAME", "products"),
            )

        return cls(
            database_url=database_url,
            db_pool_size=int(os.environ.get("DB_POOL_SIZE", "5")),
            db_max_overflow=int(os.environ.get("DB_MAX_OVERFLOW", "10")),
            db_echo=_env_bool("DB_ECHO"),
            cors_allowed_origins=_env_list(
                "CORS_ALLOWED_ORIGINS", "http://localhost:3000"
            ),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8080")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def get_settings() -> Settings:
    """Read settings fresh from the environment."""
    return Settings.from_env()
