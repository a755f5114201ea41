from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # project root
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",   # ignore unknown keys in .env
        case_sensitive=False,
    )

    DATABASE_URL: str

    JWT_SECRET: str
    JWT_ACCESS_MINUTES: int = 30
    JWT_REFRESH_DAYS: int = 14
    JWT_ALG: str = "HS256"

    # signs the cart session cookie
    SESSION_SECRET: str = "change-me"

    LOG_LEVEL: str = "INFO"

    STORAGE_DIR: str = str(BASE_DIR / "storage")

    MAIL_API_URL: str = ""
    MAIL_API_KEY: str = ""
    MAIL_FROM: str = "DealHub <noreply@dealhub.local>"
    FRONTEND_URL: str = "http://localhost:3000"

    SYS_ADMIN_EMAIL: str = "sysadmin@dealhub.local"

    TOKEN_MAX_ATTEMPTS: int = 10
    PASSWORD_RESET_TTL_HOURS: int = 2


settings = Settings()
