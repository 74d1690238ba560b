from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    base_url: str = "http://localhost:8000"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./tripdesk.db"
    redis_url: str = "redis://localhost:6379/0"

    access_token_exp_minutes: int = 60 * 12

    # OpenAI-compatible chat completions endpoint used by smart import.
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    smart_import_timeout_seconds: float = 90.0
    smart_import_max_files: int = 10
    smart_import_max_file_bytes: int = 10 * 1024 * 1024
    smart_import_max_chars: int = 60000

    venue_match_threshold: float = 0.6

    stripe_api_base: str = "https://api.stripe.com/v1"
    stripe_secret_key: str | None = None
    stripe_publishable_key: str | None = None
    # JSON objects keyed by brand id, e.g. {"2": "sk_live_..."}
    stripe_brand_secret_keys: dict[int, str] = {}
    stripe_brand_publishable_keys: dict[int, str] = {}
    stripe_webhook_secret: str | None = None
    stripe_timeout_seconds: float = 20.0

    resend_api_key: str | None = None
    email_from_address: str = "Walla Walla Travel <info@wallawalla.travel>"
    staff_notification_email: str | None = None

    proposal_number_prefix: str = "TP"
    proposal_valid_days: int = 30
    default_tax_rate: str = "0.091"


settings = Settings()
