"""Application settings loaded from environment."""

from collections.abc import Sequence
from typing import Annotated
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    app_name: str = "WorkshopBooking"
    app_env: str = "development"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    ghl_api_base_url: str = "https://services.leadconnectorhq.com"
    ghl_api_version: str = "2021-07-28"
    ghl_access_token: str = ""
    ghl_location_id: str = ""
    ghl_booking_webhook_url: str | None = None

    ghl_contact_type_field_id: str = "Y78OZFHJ5tVCNyVble9a"
    ghl_parent_contact_field_id: str = "EAfs2UwBSmgNDU89Yhlj"
    ghl_year_group_field_id: str = "6VQA8CZUWQOGjq3yspkl"

    workshop_offerings_schema: str = "custom_objects.workshop_offerings"
    bookings_schema: str = "custom_objects.bookings"

    checkout_base_url: str = "http://localhost:3000/checkout"
    checkout_success_url: str = "http://localhost:3000/checkout/success"

    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_currency: str = Field(default="gbp", min_length=3, max_length=3)

    request_timeout_seconds: float = Field(default=15.0, gt=0)
    offerings_page_limit: int = Field(default=100, ge=1, le=100)

    cors_allow_origins: Annotated[tuple[str, ...], NoDecode] = ("*",)

    @field_validator("ghl_booking_webhook_url", mode="before")
    @classmethod
    def empty_webhook_url_is_unset(cls, value: object) -> object:
        """Treat blank webhook URL as not configured."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("stripe_currency", mode="before")
    @classmethod
    def normalize_currency(cls, value: object) -> object:
        """Stripe expects lower-case ISO currency codes."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def parse_cors_allow_origins(cls, value: object) -> tuple[str, ...]:
        """Parse allowed origins from comma-separated env value."""
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        if isinstance(value, Sequence):
            return tuple(str(item).strip() for item in value if str(item).strip())
        raise TypeError("CORS_ALLOW_ORIGINS must be a comma-separated string or list")

    @model_validator(mode="after")
    def validate_integrations_for_environment(self) -> "Settings":
        """Block missing credentials in production-like environments."""
        env_name = self.app_env.strip().lower()
        if env_name not in {"production", "prod"}:
            return self

        required = {
            "GHL_ACCESS_TOKEN": self.ghl_access_token,
            "GHL_LOCATION_ID": self.ghl_location_id,
            "STRIPE_SECRET_KEY": self.stripe_secret_key,
            "STRIPE_WEBHOOK_SECRET": self.stripe_webhook_secret,
        }
        missing = [name for name, value in required.items() if not value.strip()]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} must be set in production environment",
            )

        if self.stripe_secret_key.strip().lower().startswith("change-me"):
            raise ValueError(
                "STRIPE_SECRET_KEY must not use placeholder values (change-me*) in production environment",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
