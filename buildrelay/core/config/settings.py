# File: buildrelay/core/config/settings.py

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    # --- Paths ---
    # buildrelay/core/config/settings.py -> buildrelay/core/config -> buildrelay/core -> buildrelay -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

    # --- Database ---
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "buildrelay_db")

    @property
    def DATABASE_URL(self) -> str:
        # An explicit URL always wins (tests point this at a throwaway SQLite file).
        explicit = os.getenv("DATABASE_URL")
        if explicit:
            return explicit

        if os.getenv("USE_POSTGRES", "false").lower() == "true":
            return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

        # Default: a local history file next to the other runtime data
        return f"sqlite:///{self.DATA_DIR / 'buildrelay.db'}"

    # --- Jenkins ---
    JENKINS_URL: str = os.getenv("JENKINS_URL", "http://localhost:8080").rstrip("/")
    JENKINS_USER: Optional[str] = os.getenv("JENKINS_USER")
    JENKINS_API_TOKEN: Optional[str] = os.getenv("JENKINS_API_TOKEN")
    JENKINS_HTTP_TIMEOUT_SECONDS: float = float(os.getenv("JENKINS_HTTP_TIMEOUT_SECONDS", "30"))

    # Polling cadence of the dispatch sequence
    JENKINS_QUEUE_POLL_SECONDS: float = float(os.getenv("JENKINS_QUEUE_POLL_SECONDS", "2"))
    JENKINS_BUILD_POLL_SECONDS: float = float(os.getenv("JENKINS_BUILD_POLL_SECONDS", "3"))
    # 0 disables the ceiling
    JENKINS_RESOLUTION_TIMEOUT_SECONDS: float = float(os.getenv("JENKINS_RESOLUTION_TIMEOUT_SECONDS", "300"))

    # --- AWS ---
    AWS_CONFIG_FILE: Path = Path(os.getenv("AWS_CONFIG_FILE", str(Path.home() / ".aws" / "config")))

    # --- Server ---
    PORT: int = int(os.getenv("PORT", "7007"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    ALLOWED_ORIGINS: List[str] = [
        o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
    ]

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
