from __future__ import annotations

from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Notesync Backend"
    api_prefix: str = "/api"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    database_url: str = "sqlite:///./dev.db"

    # Primary env: CORS_ALLOW_ORIGINS; also accept CORS_ORIGINS as alias.
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "CORS_ORIGINS"),
    )

    # Bearer tokens: HMAC signing secret and lifetime.
    token_secret: str = Field(
        default="token_secret_change_me",
        validation_alias=AliasChoices("TOKEN_SECRET", "JWT_SECRET"),
    )
    token_expire_seconds: int = 60 * 60 * 24 * 30  # 30 days

    # bcrypt work factor for new hashes; older hashes are upgraded on login.
    bcrypt_rounds: int = Field(default=10, ge=4, le=15)

    log_level: str = "INFO"

    # Sync batches larger than this are rejected before any delta is applied.
    sync_max_batch_size: int = 500

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        secret = self.token_secret.strip()
        if not secret or secret == "token_secret_change_me":
            errors.append("TOKEN_SECRET must be set in production")
        elif len(secret) < 32:
            errors.append("TOKEN_SECRET must be at least 32 characters in production")

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        secret = self.token_secret.strip()
        if not secret or secret == "token_secret_change_me":
            warnings.append("TOKEN_SECRET is missing or using placeholder value")
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        return warnings


settings = Settings()
