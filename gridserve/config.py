"""
GridServe - Application Configuration
======================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads GRIDSERVE_* environment variables (or a .env
       file), validates types and allowed values, and provides a frozen
       `settings` object.
Who:   Read by the application factory; the middleware and blob store
       receive plain values from it, never the object itself.
When:  Loaded once at import time; immutable afterwards.

Example .env:
    GRIDSERVE_HOSTNAME=mongo.internal
    GRIDSERVE_DATABASE=media
    GRIDSERVE_PREFIX=/gridfs
    GRIDSERVE_LOOKUP=path
    GRIDSERVE_FALLBACK_RULESET=image
    GRIDSERVE_FALLBACK_STATUS=200
"""

from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gridserve.models.blob import LookupMode
from gridserve.services.fallback import RULESETS


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Credentials are optional; when
    `username` is unset the client connects without authentication.
    """

    # ── MongoDB ───────────────────────────────────────────────────────────
    hostname: str = Field(default="localhost")
    port: int = Field(default=27017, ge=1, le=65535)
    database: str = Field(default="gridfs", min_length=1)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)

    # Applies to both server selection and the socket connect.
    connect_timeout: float = Field(default=5.0, gt=0, le=60)

    # ── GridFS routing ────────────────────────────────────────────────────
    # Leading slashes are stripped: "/gridfs" and "gridfs" are equivalent.
    prefix: str = Field(default="gridfs")

    lookup: LookupMode = Field(default=LookupMode.ID)

    # ── Fallback ──────────────────────────────────────────────────────────
    # Registered names live in gridserve.services.fallback.RULESETS.
    # "avatar" only swaps the segment before the filename
    # (users/avatar/42/a.png -> users/avatar/default/a.png). The user/club/team
    # defaults (photos/user/42/avatar/a.jpg -> photos/user/default/avatar/a.jpg)
    # need "image".
    fallback_ruleset: str = Field(default="avatar")

    # Status used when a default object stands in for the requested one.
    fallback_status: int = Field(default=302)

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="GRIDSERVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("prefix")
    @classmethod
    def strip_prefix(cls, v: str) -> str:
        prefix = v.strip().lstrip("/").rstrip("/")
        if not prefix:
            raise ValueError("prefix must not be empty")
        return prefix

    @field_validator("fallback_ruleset")
    @classmethod
    def validate_ruleset(cls, v: str) -> str:
        name = v.strip().lower()
        if name not in RULESETS:
            raise ValueError(
                f"Unknown fallback_ruleset '{v}'. Must be one of: {sorted(RULESETS)}"
            )
        return name

    @field_validator("fallback_status")
    @classmethod
    def validate_fallback_status(cls, v: int) -> int:
        if v not in (200, 302):
            raise ValueError("fallback_status must be 200 or 302")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    def mongo_credentials(self) -> Optional[Tuple[str, str]]:
        """Returns (username, password) when authentication is configured."""
        if not self.username:
            return None
        return self.username, self.password or ""


settings = Settings()
