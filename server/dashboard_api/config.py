"""Application configuration loaded from environment variables."""
import os
from functools import lru_cache
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="VITALS_")

    # Key-value store location
    data_path: str = os.getenv("DATA_PATH", os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
    store_filename: str = "notifications.db"

    @property
    def store_path(self) -> str:
        return os.path.join(self.data_path, self.store_filename)

    # Upstream services
    vitals_api_url: str = "https://evitals.life/api"
    generative_api_url: str = (
        "https://generativelanguage.googleapis.com/v1/models/gemini-2.0-flash:generateContent"
    )
    generative_api_key: str = ""
    request_timeout: float = 30.0

    # Notification retention
    retention_days: int = 30

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8082

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
