"""
Configuration management.
Simple .env based config, shared by the web app and the cron script.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    # Database
    database_path: str = "./data/catalog.db"

    # Logging
    log_level: str = "INFO"

    # AutoQuotes
    aq_api_key: str = ""
    aq_api_url: str = "https://api.aq-fes.com/products-api"

    # Shopify
    shopify_shop_name: str = ""  # "store-name" or "store-name.myshopify.com"
    shopify_access_token: str = ""  # Admin API token (shpat_...)
    shopify_api_version: str = "2024-10"
    sync_delay_seconds: float = 0.5  # pause between storefront pushes
    shopify_api_key: str = ""  # OAuth client id, only used by scripts/get_token.py
    shopify_api_secret: str = ""

    # Google overrides (optional)
    google_application_credentials: Optional[str] = None  # service account JSON key file
    google_drive_folder_id: Optional[str] = None
    google_sheet_id: Optional[str] = None
    variant_cache_ttl_seconds: float = 300.0


# Global settings instance
settings = Settings()
