import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./interviews.db")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

MATCHING_DEFAULT_DURATION_MINUTES = int(os.getenv("MATCHING_DEFAULT_DURATION_MINUTES", "60"))
MATCHING_MIN_DURATION_MINUTES = int(os.getenv("MATCHING_MIN_DURATION_MINUTES", "15"))
MATCHING_MAX_DURATION_MINUTES = int(os.getenv("MATCHING_MAX_DURATION_MINUTES", "480"))
MATCHING_DEFAULT_MAX_SLOTS = int(os.getenv("MATCHING_DEFAULT_MAX_SLOTS", "3"))
MATCHING_SEARCH_WINDOW_DAYS = int(os.getenv("MATCHING_SEARCH_WINDOW_DAYS", "14"))
MATCHING_SLOT_STEP_MINUTES = int(os.getenv("MATCHING_SLOT_STEP_MINUTES", "30"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MATCHING_SLOT_STEP_MINUTES <= 0:
        raise RuntimeError("MATCHING_SLOT_STEP_MINUTES must be positive.")
    if not 0 < MATCHING_MIN_DURATION_MINUTES <= MATCHING_MAX_DURATION_MINUTES:
        raise RuntimeError("Matching duration bounds are inconsistent.")
