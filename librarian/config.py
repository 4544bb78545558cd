import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_url: str = os.getenv("LIBRARIAN_API_URL", "http://localhost:5000/api/v1")
    # Generous default: the hosted backend can take a while to wake up
    request_timeout: float = float(os.getenv("LIBRARIAN_REQUEST_TIMEOUT", "30"))
    refresh_path: str = os.getenv("LIBRARIAN_REFRESH_PATH", "/auth/refresh")

    # Retry settings
    retry_base_delay: float = float(os.getenv("LIBRARIAN_RETRY_BASE_DELAY", "1.0"))
    auth_retry_attempts: int = int(os.getenv("LIBRARIAN_AUTH_RETRY_ATTEMPTS", "3"))
    default_retry_attempts: int = int(os.getenv("LIBRARIAN_DEFAULT_RETRY_ATTEMPTS", "2"))
    single_flight_refresh: bool = _env_flag("LIBRARIAN_SINGLE_FLIGHT_REFRESH", "True")

    # Session settings
    session_file: str = os.getenv(
        "LIBRARIAN_SESSION_FILE",
        str(Path.home() / ".librarian" / "session.json"),
    )

    # Logging
    log_level: str = os.getenv("LIBRARIAN_LOG_LEVEL", "WARNING")

    # Pagination
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "The Librarian")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG", "False")
    environment: str = os.getenv("ENVIRONMENT", "development")


settings = Settings()
