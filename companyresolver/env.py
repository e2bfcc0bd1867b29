import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_SEARCH_TIMEOUT = 12.0
DEFAULT_PROBE_TIMEOUT = 3.5
DEFAULT_MIN_BYTES = 200
DEFAULT_MAX_WORKERS = 16


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _float_env(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _int_env(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    search_timeout: float = DEFAULT_SEARCH_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    min_bytes: int = DEFAULT_MIN_BYTES
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "INFO"
    log_dir: Optional[Path] = None


def load_settings() -> Settings:
    """Read settings from COMPANYRESOLVER_* environment variables."""
    log_dir = os.getenv("COMPANYRESOLVER_LOG_DIR")
    level = os.getenv("COMPANYRESOLVER_LOG_LEVEL", "INFO").upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level = "INFO"
    return Settings(
        search_timeout=_float_env("COMPANYRESOLVER_SEARCH_TIMEOUT", DEFAULT_SEARCH_TIMEOUT),
        probe_timeout=_float_env("COMPANYRESOLVER_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT),
        min_bytes=_int_env("COMPANYRESOLVER_MIN_BYTES", DEFAULT_MIN_BYTES),
        max_workers=_int_env("COMPANYRESOLVER_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        log_level=level,
        log_dir=Path(log_dir) if log_dir else None,
    )
