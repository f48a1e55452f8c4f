from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file sits in the project root (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> herdbook -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None


@lru_cache
def get_cache_dir() -> Path:
    """Get the cache directory (.cache/ in workspace root).

    Looks for project root by finding .git or .claude directory,
    then returns .cache/ within that root. The offline write queue,
    collection snapshots and the NF-e config all live here.
    """
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / ".git").exists() or (parent / ".claude").exists():
            cache_dir = parent / ".cache"
            cache_dir.mkdir(exist_ok=True)
            return cache_dir
    # Fallback to current working directory
    cache_dir = Path.cwd() / ".cache"
    cache_dir.mkdir(exist_ok=True)
    return cache_dir


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Firebase project hosting the Firestore database
    firebase_project_id: str
    firebase_api_key: str
    firestore_database: str = "(default)"

    # Email/password account used for Firebase Auth (rules usually require it)
    firebase_email: str | None = None
    firebase_password: str | None = None

    # Breeding season rules
    breeding_min_age_months: int = 18
    pregnancy_check_days: int = 60
    # Window (days) around the 283-day expected calving date that still counts as on time
    calving_tolerance_days: int = 15

    # Local snapshots younger than this are served without hitting Firestore
    cache_max_age_hours: float = 24.0

    # Display units for CLI output ("kg" or Brazilian "arroba" = 15 kg)
    # Note: records are always stored in kilograms
    display_weight_unit: Literal["kg", "arroba"] = "kg"

    log_level: str = "INFO"
    log_file: str | None = None

    # NF-e invoice provider credentials (issuer data lives in .cache/nfe_config.json)
    nfe_provider: Literal["webmania", "focusnfe", "enotas"] | None = None
    nfe_api_key: str | None = None
    nfe_api_secret: str | None = None
    nfe_environment: Literal["homologacao", "producao"] = "homologacao"


settings = Settings()
