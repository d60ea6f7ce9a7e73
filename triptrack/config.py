import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(__file__))

DEFAULT_AVATAR_COLOR = "#0ea5e9"
PHOTO_BUCKET = "user-photos"
MAX_PHOTO_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed explicitly."""

    database_url: str = f"sqlite:///{os.path.join(BASE_DIR, 'triptrack.sqlite')}"
    secret_key: str = "change-me"
    base_url: str = "http://localhost:8000"
    storage_dir: str = os.path.join(BASE_DIR, "storage")
    photo_bucket: str = PHOTO_BUCKET
    max_photo_bytes: int = MAX_PHOTO_BYTES
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    log_level: str = "INFO"
    sql_echo: bool = False

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        defaults = cls()
        return cls(
            database_url=os.environ.get("DATABASE_URL", defaults.database_url),
            secret_key=os.environ.get("SECRET_KEY", defaults.secret_key),
            base_url=os.environ.get("BASE_URL", defaults.base_url).rstrip("/"),
            storage_dir=os.environ.get("STORAGE_DIR", defaults.storage_dir),
            photo_bucket=os.environ.get("PHOTO_BUCKET", defaults.photo_bucket),
            max_photo_bytes=int(os.environ.get("MAX_PHOTO_BYTES", defaults.max_photo_bytes)),
            google_client_id=os.environ.get("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.environ.get("GOOGLE_CLIENT_SECRET") or None,
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
            sql_echo=os.environ.get("SQL_ECHO", "").lower() in ("1", "true", "yes"),
        )
