import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str | None = os.getenv("DB_HOST")
    DB_PORT: str | None = os.getenv("DB_PORT")
    PARKING_DB_NAME: str | None = os.getenv("PARKING_DB_NAME")
    # Full URL override, e.g. sqlite:// for local runs and tests
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Allocation
    ALLOCATION_MAX_RETRIES: int = int(os.getenv("ALLOCATION_MAX_RETRIES", 3))

    # Lifecycle sweep
    AUTO_ACTIVATE_ON_START: bool = os.getenv(
        "AUTO_ACTIVATE_ON_START", "True").lower() == "true"
    NO_SHOW_GRACE_MINUTES: int = int(os.getenv("NO_SHOW_GRACE_MINUTES", 30))
    # 0 disables automated checkout of overstaying vehicles
    OVERSTAY_AUTO_COMPLETE_MINUTES: int = int(
        os.getenv("OVERSTAY_AUTO_COMPLETE_MINUTES", 0))
    OVERSTAY_PENALTY_MULTIPLIER: int = int(
        os.getenv("OVERSTAY_PENALTY_MULTIPLIER", 2))
    SWEEP_INTERVAL_SECONDS: int = int(os.getenv("SWEEP_INTERVAL_SECONDS", 60))

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

if settings.DATABASE_URL:
    PARKING_DATABASE_URL = settings.DATABASE_URL
else:
    PARKING_DATABASE_URL = (
        f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.PARKING_DB_NAME}?sslmode=require"
    )
