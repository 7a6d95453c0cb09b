from pydantic_settings import BaseSettings
from typing import Dict, List, Union
from pydantic import field_validator
import json
from uuid import UUID


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Field Dispatch API"
    APP_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # Database Settings
    POSTGRES_USER: str = "user"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "dispatch_db"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis Settings (Celery broker + rate limiting)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # JWT Settings
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Dispatch Settings
    PUBLIC_POOL_ORG_ID: UUID = UUID("00000000-0000-0000-0000-000000000001")
    PUBLIC_POOL_ORG_NAME: str = "Public Technicians Pool"
    DISPATCH_RADIUS_MILES: float = 50.0
    MATCH_RADIUS_METERS: float = 40000.0
    COLD_LEAD_BATCH_SIZE: int = 50
    SLA_POLL_INTERVAL_SECONDS: int = 60

    # SendGrid Settings (warm technicians)
    SENDGRID_API_KEY: str = ""
    SENDGRID_TEMPLATE_ID_WORK_ORDER: str = ""
    SENDGRID_FROM_EMAIL: str = "jobs@example.com"
    SENDGRID_FROM_NAME: str = "Dispatch Jobs"

    # Instantly.ai Settings (cold leads)
    INSTANTLY_API_KEY: str = ""
    INSTANTLY_CAMPAIGN_IDS: Union[Dict[str, str], str] = {}

    # Hunter.io Settings (email enrichment)
    HUNTER_API_KEY: str = ""

    # Google Maps Settings (geocoding)
    GOOGLE_MAPS_API_KEY: str = ""

    # OpenAI Settings
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.0

    # CORS Settings - can be set as JSON string in .env
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[List[str], str]) -> List[str]:
        """Parse CORS origins from JSON string or list"""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, split by comma
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("INSTANTLY_CAMPAIGN_IDS", mode="before")
    @classmethod
    def parse_campaign_ids(cls, v: Union[Dict[str, str], str]) -> Dict[str, str]:
        """Parse trade -> campaign id map from JSON or `TRADE=id,TRADE=id`"""
        if isinstance(v, str):
            if not v.strip():
                return {}
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pairs = [item.split("=", 1) for item in v.split(",") if "=" in item]
                return {trade.strip(): campaign.strip() for trade, campaign in pairs}
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
