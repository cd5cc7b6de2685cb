import os
from dotenv import load_dotenv

load_dotenv()


def _split_names(raw: str):
    return [name.strip() for name in raw.split(",") if name.strip()]


class Config:
    """
    Settings read straight from environment variables, with development defaults.
    """
    # Spreadsheet-backed remote endpoint
    SHEET_ENDPOINT_URL: str = os.environ.get("SHEET_ENDPOINT_URL", "")
    REMOTE_TIMEOUT_SECONDS: float = float(os.environ.get("REMOTE_TIMEOUT_SECONDS", 8))

    # Local cache (Redis)
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX: str = os.environ.get("CACHE_KEY_PREFIX", "prayer_attendance:")

    # "replace" or "merge"
    STUDENT_SYNC_POLICY: str = os.environ.get("STUDENT_SYNC_POLICY", "replace")

    # School clock, WIB by default
    UTC_OFFSET_HOURS: int = int(os.environ.get("UTC_OFFSET_HOURS", 7))
    SCAN_DEBOUNCE_SECONDS: int = int(os.environ.get("SCAN_DEBOUNCE_SECONDS", 4))
    SYNC_INTERVAL_MINUTES: int = int(os.environ.get("SYNC_INTERVAL_MINUTES", 5))
    MAX_RANGE_DAYS: int = int(os.environ.get("MAX_RANGE_DAYS", 366))

    # Login
    ADMIN_USERNAME: str = os.environ.get("ADMIN_USERNAME", "ADMINISTRATOR")
    ADMIN_PASSWORD: str = os.environ.get("ADMIN_PASSWORD", "admin123")
    STAFF_PASSWORD: str = os.environ.get("STAFF_PASSWORD", "guru123")
    STAFF_NAMES: list = _split_names(os.environ.get("STAFF_NAMES", ""))
    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-only-secret-key-change-me-in-production")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")

    # Rate limiting
    RATE_LIMITER_STORAGE_URI: str = os.environ.get("RATE_LIMITER_STORAGE_URI", "memory://")
    RATE_LIMIT_ENABLED: bool = os.environ.get("RATE_LIMIT_ENABLED", "true").lower() == "true"

    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")

# Single importable settings instance
settings = Config()
