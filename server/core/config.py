"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1024, le=65535)
    debug: bool = Field(default=False)
    workers: int = Field(default=1, ge=1, le=8)

    # Authentication
    jwt_secret_key: str = Field(min_length=32)
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=1440, ge=5)  # 24 hours
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # Sessions
    session_expire_hours: int = Field(default=24, ge=1)
    session_inactive_days: int = Field(default=7, ge=1)

    # Security
    cors_origins: List[str] = Field(default=["http://localhost:3000"])

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./data/mediate.db")
    database_name: str = Field(default="mediate")
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=20, ge=5, le=100)
    database_max_overflow: int = Field(default=30, ge=10, le=100)

    # Cache Maintenance
    cache_cleanup_enabled: bool = Field(default=True)
    cache_cleanup_interval: int = Field(default=900, ge=60)  # seconds

    # Simulation / workflow API (also fronts the Fuseki RDF store)
    simulation_api_url: str = Field(default="http://localhost:8000")
    simulation_timeout: int = Field(default=30, ge=1, le=600)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database directory exists for SQLite."""
        if v and v.startswith("sqlite"):
            if ":///" in v:
                db_path = v.split("///")[1]
                if db_path and db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
        "env_nested_delimiter": "__",
    }
