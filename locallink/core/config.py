import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_weekdays(value: str | None, default: frozenset[int]) -> frozenset[int]:
    if value is None:
        return default
    weekdays = frozenset(int(item) for item in _get_list(value, []))
    if any(weekday < 0 or weekday > 6 for weekday in weekdays):
        raise RuntimeError("Weekdays must be between 0 (Monday) and 6 (Sunday).")
    return weekdays

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Upper bound on a single event's length; the conflict fetch window is padded by it.
MAX_EVENT_DURATION_MINUTES = _get_int(os.getenv("MAX_EVENT_DURATION_MINUTES"), 24 * 60)
NEXT_SLOT_HORIZON_DAYS = _get_int(os.getenv("NEXT_SLOT_HORIZON_DAYS"), 30)
INCLUDE_CANCELLED_IN_CONFLICTS = _get_bool(os.getenv("INCLUDE_CANCELLED_IN_CONFLICTS"), default=True)

DEFAULT_CLOSED_WEEKDAYS = _get_weekdays(os.getenv("DEFAULT_CLOSED_WEEKDAYS"), frozenset({6}))
DEFAULT_SLOT_MINUTES = _get_int(os.getenv("DEFAULT_SLOT_MINUTES"), 60)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MAX_EVENT_DURATION_MINUTES < 0:
        raise RuntimeError("MAX_EVENT_DURATION_MINUTES cannot be negative.")
    if DEFAULT_SLOT_MINUTES <= 0:
        raise RuntimeError("DEFAULT_SLOT_MINUTES must be positive.")
