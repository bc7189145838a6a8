"""Application settings and validation."""

import os
from pathlib import Path
from typing import List

BASE = Path(__file__).resolve().parent.parent
DEFAULT_STATUSES = "pending,approved,rejected,completed"


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str
    APPLICATION_STATUSES: List[str]
    STRICT_STATUS_VALIDATION: bool
    HOST: str
    PORT: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        raw_statuses = os.getenv("APPLICATION_STATUSES", DEFAULT_STATUSES)
        self.APPLICATION_STATUSES = [s.strip() for s in raw_statuses.split(",") if s.strip()]
        self.STRICT_STATUS_VALIDATION = os.getenv("STRICT_STATUS_VALIDATION", "false").lower() == "true"
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "5000"))
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if "pending" not in self.APPLICATION_STATUSES:
            # submitted applications always start out pending
            self.APPLICATION_STATUSES.insert(0, "pending")


settings = Settings()
