import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def app_root_dir() -> Path:
    if getattr(sys, "frozen", False):
        exe_dir = Path(sys.executable).resolve().parent
        return exe_dir.parent
    return Path(__file__).resolve().parent


def resolve_db_path(root_dir: Path) -> Path:
    custom_path = os.getenv("APP_DB_PATH")
    if not custom_path:
        data_dir = root_dir / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / "workshop.db"

    db_path = Path(custom_path).expanduser()
    if not db_path.is_absolute():
        db_path = (root_dir / db_path).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def resolve_database_url(root_dir: Path) -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{resolve_db_path(root_dir).as_posix()}"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    session_secret: str
    session_max_age: int
    log_level: str

    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    smtp_from: str
    smtp_starttls: bool

    default_admin_username: str
    default_admin_password: str
    default_admin_email: str | None

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host)


def load_settings() -> Settings:
    return Settings(
        database_url=resolve_database_url(app_root_dir()),
        session_secret=os.getenv("SESSION_SECRET", "change-me-workshop-session"),
        session_max_age=int(os.getenv("SESSION_MAX_AGE", str(7 * 24 * 60 * 60))),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=os.getenv("SMTP_USER") or None,
        smtp_password=os.getenv("SMTP_PASSWORD") or None,
        smtp_from=os.getenv("SMTP_FROM", "Workshop System <workshop@localhost>"),
        smtp_starttls=_env_bool("SMTP_STARTTLS", True),
        default_admin_username=os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
        default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123"),
        default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL") or None,
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
