from pydantic_settings import BaseSettings
from typing import List
from dotenv import load_dotenv
import os

load_dotenv()


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"

    # Database
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")

    # CORS
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")

    @property
    def allowed_origins_list(self) -> List[str]:
        return self.ALLOWED_ORIGINS.split(",")

    # Redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

    @property
    def redis_connection_url(self) -> str:
        return self.REDIS_URL.strip()

    # Calendar used to decide what "today" is for streaks and freeze days
    APP_TIMEZONE: str = os.getenv("APP_TIMEZONE", "UTC")

    # Leaderboard
    LEADERBOARD_LIMIT: int = int(os.getenv("LEADERBOARD_LIMIT", 20))
    LEADERBOARD_CACHE_TTL_SECONDS: int = int(
        os.getenv("LEADERBOARD_CACHE_TTL_SECONDS", 300)
    )

    # Freeze days
    FREEZE_MAX_DAYS_PER_REQUEST: int = int(os.getenv("FREEZE_MAX_DAYS_PER_REQUEST", 3))
    FREEZE_HORIZON_DAYS: int = int(os.getenv("FREEZE_HORIZON_DAYS", 90))

    # Check-ins
    CHECKIN_HISTORY_DAYS: int = int(os.getenv("CHECKIN_HISTORY_DAYS", 90))
    AUTO_PROVISION_USER_PROFILES: bool = (
        os.getenv("AUTO_PROVISION_USER_PROFILES", "true").lower() == "true"
    )

    # PostHog Analytics
    POSTHOG_API_KEY: str = os.getenv("POSTHOG_API_KEY", "")
    POSTHOG_HOST: str = os.getenv("POSTHOG_HOST", "https://us.i.posthog.com")
    POSTHOG_ENABLE_EXCEPTION_AUTOCAPTURE: bool = (
        os.getenv("POSTHOG_ENABLE_EXCEPTION_AUTOCAPTURE", "true").lower() == "true"
    )

    class Config:
        env_file = [".env.local", ".env"]
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
