"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for TaskGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Both the
      auth service and the tasks service read the same Settings class; each
      only looks at the fields it needs.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Resolves the JWT_SECRET fallback once,
      after all fields are read from the environment.

Security notes:
  [S1] A missing JWT_SECRET falls back to a fixed development key and logs a
       warning. Set REQUIRE_JWT_SECRET=true in production to turn the fallback
       into a hard startup failure.

  [S2] A JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every issued token.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
tasks/, or cache/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskgate.config")

_ROOT = Path(__file__).resolve().parent.parent

# Used only when JWT_SECRET is unset. Anyone who reads this file can forge
# tokens signed with it.
DEV_FALLBACK_SECRET = "taskgate-insecure-development-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Tokens and passwords (auth service)
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below swaps in the development fallback or raises.
    jwt_secret: str = ""
    require_jwt_secret: bool = False
    token_ttl_seconds: int = 24 * 60 * 60
    # Cost 10 is roughly 100ms per hash on current hardware.
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Login throttling (auth service)
    # ------------------------------------------------------------------

    rate_limit_max_attempts: int = 5
    rate_limit_window_seconds: float = 15 * 60
    rate_limit_max_sources: int = 10_000
    rate_limit_sweep_seconds: float = 5 * 60
    # Only enable behind a reverse proxy that overwrites these headers.
    trust_forwarded_headers: bool = False

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    auth_db_url: str = f"sqlite:///{_ROOT / 'auth' / 'taskgate_auth.db'}"
    tasks_db_url: str = f"sqlite:///{_ROOT / 'tasks' / 'taskgate_tasks.db'}"

    # ------------------------------------------------------------------
    # Inter-service trust (tasks service)
    # ------------------------------------------------------------------

    auth_service_url: str = "http://localhost:8080"
    auth_verify_timeout_seconds: float = 3.0
    # 0 disables the verification cache: every request re-verifies remotely.
    auth_verify_cache_seconds: float = 30.0

    # ------------------------------------------------------------------
    # HTTP surface (both services)
    # ------------------------------------------------------------------

    cors_allowed_origins: list[str] = ["http://localhost:3000"]
    tasks_rate_limit: str = "120/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_jwt_secret(self) -> "Settings":
        """Apply the JWT_SECRET policy [S1][S2].

        Unset secret: fall back to DEV_FALLBACK_SECRET with a warning, unless
            REQUIRE_JWT_SECRET is set, in which case refuse to start.

        Configured secret: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.require_jwt_secret:
                raise ValueError(
                    "JWT_SECRET is required when REQUIRE_JWT_SECRET=true. "
                    "Set JWT_SECRET in your environment or .env file."
                )
            logger.warning(
                "WARNING: JWT_SECRET not set, using the built-in development key. "
                "NOT SECURE FOR PRODUCTION."
            )
            self.jwt_secret = DEV_FALLBACK_SECRET
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
