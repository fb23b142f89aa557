import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

MAX_DAYS_PER_WEEK = int(os.getenv("MAX_DAYS_PER_WEEK", "4"))
MAX_MONTHS_AHEAD = int(os.getenv("MAX_MONTHS_AHEAD", "2"))
MIN_BOOKING_MINUTES = int(os.getenv("MIN_BOOKING_MINUTES", "30"))
MIN_CALENDAR_YEAR = int(os.getenv("MIN_CALENDAR_YEAR", "2025"))

# Used when an override or rule carries a malformed time value.
DEFAULT_WINDOW_START = os.getenv("DEFAULT_WINDOW_START", "09:00:00")
DEFAULT_WINDOW_END = os.getenv("DEFAULT_WINDOW_END", "17:00:00")

AVAILABILITY_RETENTION_DAYS = int(os.getenv("AVAILABILITY_RETENTION_DAYS", "7"))
PRUNE_BATCH_SIZE = int(os.getenv("PRUNE_BATCH_SIZE", "1000"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
