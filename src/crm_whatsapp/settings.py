"""
Settings

Environment-driven configuration for the WhatsApp integration.
Values are read from the process environment and an optional .env file.
"""

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict

from crm_whatsapp.providers.base import Credentials


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./crm_whatsapp.db"
    LOG_LEVEL: str = "INFO"

    # Environment-level default credentials (used when a tenant has no integration)
    WHATSAPP_ACCESS_TOKEN: str = ""
    WHATSAPP_PHONE_NUMBER_ID: str = ""
    WHATSAPP_BUSINESS_ACCOUNT_ID: str = ""

    # Graph API
    WHATSAPP_GRAPH_API_VERSION: str = "v17.0"
    WHATSAPP_HTTP_TIMEOUT: float = 30.0
    WHATSAPP_MAX_RETRIES: int = 3
    WHATSAPP_PROVIDER: str = "meta"  # meta, stub

    # Webhook verification
    WHATSAPP_VERIFY_TOKEN: str = ""
    WHATSAPP_APP_SECRET: str = ""

    # Fernet key for stored access tokens (optional)
    WHATSAPP_ENCRYPTION_KEY: str = ""

    # Owner of activities on leads with no assigned user
    SYSTEM_USER_ID: int = 1

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    def default_credentials(self) -> Credentials | None:
        """Environment-level credentials, or None if not configured."""
        if not self.WHATSAPP_ACCESS_TOKEN or not self.WHATSAPP_PHONE_NUMBER_ID:
            return None
        return Credentials(
            access_token=self.WHATSAPP_ACCESS_TOKEN,
            phone_number_id=self.WHATSAPP_PHONE_NUMBER_ID,
            business_account_id=self.WHATSAPP_BUSINESS_ACCOUNT_ID or None,
        )


@functools.lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()
