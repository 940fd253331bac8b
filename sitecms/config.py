from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # MongoDB settings
    MONGO_URI: str
    MONGO_DB_NAME: str = "mechanic_bano"
    MONGO_MAX_POOL_SIZE: int = 10
    MONGO_MIN_POOL_SIZE: int = 2
    MONGO_SOCKET_TIMEOUT_MS: int = 30000
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    MONGO_HEARTBEAT_FREQUENCY_MS: int = 10000
    MONGO_CONNECT_TIMEOUT_MS: int = 10000

    # Object storage (Supabase)
    SUPABASE_PROJECT_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    STORAGE_TIMEOUT: float = 10.0

    # General settings
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # API settings
    API_TITLE: str = "Site CMS API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Content management backend for a single site"

    # Security settings
    API_KEY: Optional[str] = None

    # CORS settings, comma separated origins
    ALLOWED_ORIGINS: str = ""

    # Site defaults served while the singleton documents are empty
    SITE_NAME: str = "Mechanic Bano"
    WELCOME_TITLE: str = "Welcome to Mechanic Bano"
    WELCOME_MESSAGE: str = "Your one-stop solution for all mechanical needs"

    @field_validator("MONGO_URI")
    @classmethod
    def check_mongo_scheme(cls, value: str) -> str:
        if not value.startswith("mongodb"):
            raise ValueError("Invalid MONGO_URI format. Must start with mongodb")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def storage_configured(self) -> bool:
        return bool(self.SUPABASE_PROJECT_URL and self.SUPABASE_SERVICE_KEY)

settings = Settings()
