"""
Configuration management for Spelling Word Collector

Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional, Dict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Spelling Word Collector"
    port: int = 3000
    log_level: str = "INFO"

    # CORS Configuration
    # Default "*" allows all origins (the practice app is served from anywhere)
    # For production with a fixed frontend, set to comma-separated list:
    #   CORS_ALLOWED_ORIGINS=https://spellingbee.example.com
    cors_allowed_origins: str = "*"

    # =========================================================================
    # Storage Backend Selection
    # "firebase" for the shared family store, "memory" for local development
    # =========================================================================
    storage_backend: str = "firebase"

    # Firebase Configuration
    firebase_database_url: Optional[str] = None
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Firebase Service Account (optional - for direct credential usage)
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_private_key_id: Optional[str] = None

    # =========================================================================
    # Device-local storage
    # JSON file standing in for the browser's local storage
    # =========================================================================
    local_store_path: str = "data/device.json"

    # =========================================================================
    # Streaks
    # IANA zone used to decide what "today" is. None uses host local time.
    # =========================================================================
    streak_timezone: Optional[str] = None

    # =========================================================================
    # Join code email (Gmail SMTP with an app password)
    # =========================================================================
    gmail_email: Optional[str] = None
    gmail_app_password: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    app_url: str = "https://spellingbee.example.com"

    # =========================================================================
    # Example sentence generation (Anthropic)
    # =========================================================================
    claude_api_key: Optional[str] = None
    sentence_model: str = "claude-3-haiku-20240307"
    sentence_max_words: int = 10

    # Debug Configuration
    debug_storage: bool = False   # Log storage operations
    debug_api_calls: bool = False  # Log outbound mail / sentence calls
    debug_log_dir: str = "logs/debug"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def get_firebase_credentials_dict(self) -> Optional[Dict]:
        """
        Get Firebase credentials as a dict from environment variables.

        Returns None if credentials are not available.
        """
        if self.firebase_client_email and self.firebase_private_key:
            return {
                "type": "service_account",
                "project_id": self.firebase_project_id,
                "private_key_id": self.firebase_private_key_id or "",
                "private_key": self.firebase_private_key.replace("\\n", "\n"),  # Handle escaped newlines
                "client_email": self.firebase_client_email,
                "client_id": "",
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
            }
        return None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once.
    """
    return Settings()
