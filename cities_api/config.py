"""Service settings loaded from the environment (and an optional .env file)."""

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration for the cities API."""

    auth_token: str = ""
    data_path: Path = Path("addresses.json")
    host: str = "127.0.0.1"
    port: int = 8080
    job_ttl_s: float = Field(default=300, gt=0)
    job_sweep_interval_s: float = Field(default=30, gt=0)
    area_workers: int = Field(default=1, ge=1)
    store_chunk_size: int = Field(default=64 * 1024, ge=1)
    store_max_record_size: int = Field(default=1024 * 1024, ge=1)

    @property
    def has_auth_token(self) -> bool:
        return bool(self.auth_token)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Variables already present in the process environment take precedence
        over values found in a local `.env` file.

        Returns:
            A validated Settings instance.
        """
        load_dotenv(override=False)
        return cls(
            auth_token=os.getenv("AUTH_TOKEN", ""),
            data_path=os.getenv("DATA_PATH", "addresses.json"),
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "8080")),
            job_ttl_s=float(os.getenv("JOB_TTL", "300")),
            job_sweep_interval_s=float(os.getenv("JOB_SWEEP_INTERVAL", "30")),
            area_workers=int(os.getenv("AREA_WORKERS", "1")),
            store_chunk_size=int(os.getenv("STORE_CHUNK_SIZE", str(64 * 1024))),
            store_max_record_size=int(os.getenv("STORE_MAX_RECORD_SIZE", str(1024 * 1024))),
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once."""
    return Settings.from_env()
