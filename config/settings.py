"""
Configuration settings loader.
Reads provider keys from the environment (and an optional .env file) and
masks them for logging. Every key is optional: a provider without one
reports itself unavailable instead of failing startup.
"""

import os
from pathlib import Path
from dotenv import load_dotenv
from .api_key_manager import APIKeyManager

project_root = Path(__file__).parent.parent
load_dotenv(dotenv_path=project_root / '.env')

# Pool name -> environment variable (comma-separated keys allowed)
KEY_VARIABLES = {
    'RAPIDAPI': 'RAPIDAPI_KEY',
    'ALPHAVANTAGE': 'ALPHAVANTAGE_API_KEY',
    'OPENROUTER': 'OPENROUTER_API_KEY',
}


class Settings:
    """Provider credentials, one rotating pool per provider."""

    def __init__(self):
        self.manager = APIKeyManager()
        for pool, variable in KEY_VARIABLES.items():
            self.manager.register(pool, os.getenv(variable))

    @property
    def RAPIDAPI_KEY(self) -> str | None:
        return self.manager.get('RAPIDAPI')

    @property
    def ALPHAVANTAGE_API_KEY(self) -> str | None:
        return self.manager.get('ALPHAVANTAGE')

    @property
    def OPENROUTER_API_KEY(self) -> str | None:
        return self.manager.get('OPENROUTER')

    def has_key(self, provider: str) -> bool:
        return self.manager.has_key(provider)

    @staticmethod
    def mask_api_key(api_key: str) -> str:
        """
        Mask API key for secure logging.
        Shows only first 4 and last 4 characters.

        Examples:
            >>> Settings.mask_api_key("abcd1234efgh5678")
            'abcd...5678'
            >>> Settings.mask_api_key("short")
            '****'
        """
        if not api_key or len(api_key) < 8:
            return "****"
        return f"{api_key[:4]}...{api_key[-4:]}"


settings = Settings()
