from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://hunter:hunter@db:5432/hunter"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # --- Quest XP rules ---
    BASE_XP: int = 50
    VERIFIED_MULTIPLIER: float = 1.0
    UNVERIFIED_MULTIPLIER: float = 0.4
    STREAK_BONUS_PER_DAY: int = 2
    MAX_STREAK_BONUS: int = 30

    # --- Level curve: xp_required(level) = Q * level^2 + L * level ---
    LEVEL_CURVE_QUADRATIC: int = 250
    LEVEL_CURVE_LINEAR: int = 750
    # Levels checked for positivity / monotonicity at startup.
    LEVEL_CURVE_CHECK_LEVELS: int = 200

    # --- Streaks ---
    STREAK_KEY: str = "daily_verified"
    STREAK_POLICY: Literal["all_verified_passed", "all_passed"] = "all_verified_passed"

    # --- Honest ranking ---
    UNRANKED_PERCENTILE: float = 5.0
    REQUIRE_CRITICAL_METRICS: bool = False
    ASSESSMENT_SESSION_TTL_MINUTES: int = 60

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
