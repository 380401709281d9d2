# ris_app/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    # === Database ===
    DATABASE_URL: str
    DATABASE_TEST_URL: Optional[str] = None

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and "localhost" in v:
            raise ValueError("Production environment cannot use localhost database!")
        return v

    # === JWT ===
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    ALLOWED_METHODS: List[str] = ["*"]
    ALLOWED_HEADERS: List[str] = ["*"]

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    TIMEZONE: str = "Asia/Manila"

    # === RIS form ===
    RIS_ENTITY_NAME: str = "TESDA Provincial Training Center - Lipa"
    RIS_FUND_CLUSTER: str = ""
    RIS_DIVISION: str = "TESDA PTC Lipa"
    RIS_OFFICE: str = "TESDA PTC Lipa"
    RIS_APPROVING_OFFICER: str = "CHRISTOPHER DC. AQUILO"
    RIS_APPROVING_DESIGNATION: str = "Designated Admin. Officer | Supply/Property Custodian"
    RIS_DEFAULT_BUDGET_SOURCE: str = "MOOE"
    RIS_ITEM_ROWS: int = 12
    RIS_SET_ROW_OFFSET: int = 29
    RIS_TEMPLATE_PATH: Optional[str] = None
    RIS_SET_TEMPLATE_PATH: Optional[str] = None

    # === Business Rules ===
    DEFAULT_MIN_STOCK_LEVEL: int = 10
    DEFAULT_UNIT: str = "pcs"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Create a global settings instance
settings = Settings()
