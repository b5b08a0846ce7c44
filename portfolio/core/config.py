# portfolio/core/config.py

from pathlib import Path
from pydantic import EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (where .env should be located)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra="ignore"
    )

    # App Configuration
    APP_NAME: str = "Portfolio Tracker API"
    DEBUG: bool = False
    VERSION: str = "1.0.0"

    # Database Configuration
    DATABASE_URL: str

    # JWT / Security Configuration
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days
    SESSION_COOKIE_NAME: str = "token"
    BCRYPT_ROUNDS: int = 12

    # CORS Configuration
    FRONTEND_URL: str = "http://localhost:3000"

    # SendGrid Configuration
    SENDGRID_API_KEY: str = ""
    EMAIL_FROM: EmailStr = "no-reply@portfolio-tracker.app"
    EMAIL_FROM_NAME: str = "Investment Tracker"

    # development | production
    ENVIRONMENT: str = "development"

    @property
    def is_sqlite(self) -> bool:
        """SQLite needs a single shared connection instead of a pool"""
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def secure_cookies(self) -> bool:
        return self.ENVIRONMENT != "development"

# Create a global settings instance
settings = Settings()
