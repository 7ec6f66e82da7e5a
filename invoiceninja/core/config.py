"""
Client configuration settings.
"""

import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Invoice Ninja client settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra environment variables
    )

    # Project settings
    PROJECT_NAME: str = "invoiceninja-python"
    VERSION: str = "1.0.0"

    # API settings
    INVOICE_NINJA_API_TOKEN: str = os.getenv("INVOICE_NINJA_API_TOKEN", "")
    INVOICE_NINJA_BASE_URL: str = os.getenv("INVOICE_NINJA_BASE_URL", "https://invoicing.co")
    INVOICE_NINJA_TIMEOUT: float = 30.0

    # Webhook settings
    INVOICE_NINJA_WEBHOOK_SECRET: str = os.getenv("INVOICE_NINJA_WEBHOOK_SECRET", "")

    # Client-side rate limiting
    INVOICE_NINJA_RATE_LIMIT_PER_SECOND: int = 10

    # Retry settings
    INVOICE_NINJA_MAX_RETRIES: int = 3
    INVOICE_NINJA_INITIAL_BACKOFF: float = 1.0
    INVOICE_NINJA_MAX_BACKOFF: float = 30.0
    INVOICE_NINJA_BACKOFF_MULTIPLIER: float = 2.0
    INVOICE_NINJA_RETRY_STATUS_CODES: str = "429,500,502,503,504"
    INVOICE_NINJA_RETRY_JITTER: bool = True

    @property
    def retry_status_codes_list(self) -> List[int]:
        """Parse INVOICE_NINJA_RETRY_STATUS_CODES from comma-separated string to list."""
        return [
            int(code.strip())
            for code in self.INVOICE_NINJA_RETRY_STATUS_CODES.split(",")
            if code.strip()
        ]


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get client settings."""
    return settings
