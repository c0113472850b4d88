from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Upstream catalog
    UPSTREAM_BASE_URL: str = "https://pokeapi.co/api/v2"
    INDEX_LIMIT: int = 1500  # size of the single listing call
    REQUEST_TIMEOUT: float = 10.0  # seconds, per upstream request

    # Read-through cache
    CACHE_TTL_SECONDS: float = 300.0
    MOVES_LIMIT: int = 20

    # Auth (stateless bearer tokens)
    JWT_SECRET: str = "pokemon-secret-key-2024"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_HOURS: int = 24
    AUTH_USERNAME: str = "admin"
    AUTH_PASSWORD: str = "admin"

    # API
    RATE_LIMIT: str = "120/minute"  # per client IP
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
