# calculator_server/config.py

import os
import logging
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


load_dotenv()

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "dev-secret-key-change-me"


class Settings(BaseModel):
    app_name: str = "Calculator REST API"
    version: str = "2.0.0"
    environment: str = "development"

    database_url: str = "sqlite:///./data/app.db"

    # Tokens
    jwt_secret_key: str = DEV_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24h
    token_issuer: str = "calculator-api"
    token_audience: str = "calculator-users"

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Builds settings from environment variables (and a .env file, if any).
        A production deployment must provide its own JWT_SECRET_KEY.
        """
        environment = os.getenv("APP_ENV", "development")
        secret_key = os.getenv("JWT_SECRET_KEY")
        if not secret_key:
            if environment == "production":
                raise ValueError("JWT_SECRET_KEY must be set in production")
            logger.warning("JWT_SECRET_KEY is not set, using the development key")
            secret_key = DEV_SECRET_KEY

        return cls(
            environment=environment,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./data/app.db"),
            jwt_secret_key=secret_key,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)),
            token_issuer=os.getenv("TOKEN_ISSUER", "calculator-api"),
            token_audience=os.getenv("TOKEN_AUDIENCE", "calculator-users"),
            cors_origins=os.getenv("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
