"""
Application Settings

Values are read from the environment (and a local .env file when present).
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "tasty-bites"
    jwt_secret: str = "change-me"
    jwt_expires_in: int = 3600
    port: int = 8000
    environment: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_expires_in=int(os.getenv("JWT_EXPIRES_IN", cls.jwt_expires_in)),
            port=int(os.getenv("PORT", cls.port)),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )
