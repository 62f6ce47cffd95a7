"""
Foundation settings for the Stencil platform.
"""

from typing import Annotated, Literal

from fastapi import Request
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class StencilSettings(BaseSettings):
    """
    Settings shared by every Stencil package.

    The process bootstrap builds one instance and hands it to the application;
    request handling reads it back from ``app.state.settings``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Basic Environment ---
    DEBUG: bool = True
    SECRET_KEY: str = ""
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # --- HTTP ---
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    API_PREFIX: str = "/api"
    ENABLE_REQUEST_ID: bool = True
    ENABLE_CORS: bool = False
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["http://localhost:5173"]

    # --- Database Core ---
    DATABASE_URL: str = "sqlite+aiosqlite:///stencil.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # --- Roles & Tokens ---
    ADMIN_ROLE: str = "Admin"
    DEFAULT_ROLE: str = "Viewer"
    ROLES: Annotated[list[str], NoDecode] = ["Admin", "Manager", "Viewer"]
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # --- Model definitions ---
    DEFINITION_STORE: Literal["database", "filesystem"] = "database"
    MODELS_DIR: str = "models"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    @field_validator("ROLES", "CORS_ORIGINS", mode="before")
    @classmethod
    def split_comma_list(cls, v: object) -> object:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def validate_security(self) -> "StencilSettings":
        """Ensures production doesn't ship without a secret key."""
        if not self.DEBUG and not self.SECRET_KEY:
            raise ValueError("SECRET_KEY is mandatory in production mode.")
        return self

    @model_validator(mode="after")
    def validate_roles(self) -> "StencilSettings":
        """The admin and default roles must be members of ROLES."""
        for role in (self.ADMIN_ROLE, self.DEFAULT_ROLE):
            if role not in self.ROLES:
                self.ROLES = [*self.ROLES, role]
        return self

    def is_development(self) -> bool:
        return self.DEBUG or self.ENVIRONMENT == "development"

    @property
    def api_prefix(self) -> str:
        prefix = "/" + self.API_PREFIX.strip("/")
        return "" if prefix == "/" else prefix


def get_settings(request: Request) -> StencilSettings:
    """FastAPI dependency returning the settings the application was built with."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = StencilSettings()
        request.app.state.settings = settings
    return settings
