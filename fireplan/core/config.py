from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

PACKAGE_ROOT = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    PROJECT_NAME: str = "Fireplan API"
    API_V1_STR: str = "/api"

    @field_validator("CORS_ORIGIN_URLS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str]) -> list[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    CORS_ORIGIN_URLS: list[str] | str = []

    # Extra
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Historical dataset (year,stocks,bonds,inflation as decimal fractions)
    HISTORICAL_RETURNS_PATH: Optional[Path] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return v.upper()

    # Projection defaults, injected into the engine by the API layer
    DEFAULT_PROJECTION_YEARS: int = 60
    DEFAULT_NORMAL_FIRE_SPEND: float = 55000.0
    DEFAULT_FAT_FIRE_SPEND: float = 65000.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def historical_returns_path(self) -> Path:
        if self.HISTORICAL_RETURNS_PATH:
            return self.HISTORICAL_RETURNS_PATH
        return PACKAGE_ROOT / "data" / "historical_returns.csv"

settings = Settings()
