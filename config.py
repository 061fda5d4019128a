"""Configuration management using Pydantic settings"""

import platform
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import List, Optional

from donations.currency_handler import DEFAULT_CURRENCY_CODE, SUPPORTED_CURRENCY_CODES


def get_default_storage_path() -> str:
    """
    Get OS-specific default storage path for donation settings.

    Returns:
        - macOS: ~/Library/Application Support/Donations
        - Linux: ~/.local/share/donations
        - Windows: %APPDATA%/Donations
    """
    system = platform.system()
    home = Path.home()

    if system == "Darwin":  # macOS
        return str(home / "Library" / "Application Support" / "Donations")
    elif system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return str(Path(appdata) / "Donations")
        return str(home / "AppData" / "Roaming" / "Donations")
    else:  # Linux and others
        # Follow XDG Base Directory specification
        xdg_data = os.environ.get("XDG_DATA_HOME")
        if xdg_data:
            return str(Path(xdg_data) / "donations")
        return str(home / ".local" / "share" / "donations")


class Settings(BaseSettings):
    """Application settings"""

    # Storage
    STORAGE_DIR: str = get_default_storage_path()
    DONATIONS_STORE_FILE: str = "donations_store.json"

    # Currency policy
    DONATIONS_DEFAULT_CURRENCY: str = DEFAULT_CURRENCY_CODE
    DONATIONS_SUPPORTED_CURRENCIES: List[str] = sorted(SUPPORTED_CURRENCY_CODES)

    # Registered phone number (E.164), used as a currency hint when the
    # locale has none
    DONATIONS_LOCAL_NUMBER: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def get_store_path(self) -> Path:
        """Full path of the key-value store document"""
        return Path(self.STORAGE_DIR) / self.DONATIONS_STORE_FILE

    def create_directories(self):
        """Create necessary directories"""
        Path(self.STORAGE_DIR).mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
