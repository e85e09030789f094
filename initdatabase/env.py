import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

ENV_PREFIX = "INIT_DATABASE_"


def load_env() -> None:
    """Load .env from the working directory if present.
    Values already set in the environment win.
    """
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def env_name(option: str) -> str:
    """INIT_DATABASE_* variable name for a CLI option, e.g. database-url."""
    return ENV_PREFIX + option.upper().replace("-", "_")


def get_env(option: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(env_name(option), default)


def get_env_int(option: str, default: int = 0) -> int:
    value = os.getenv(env_name(option))
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{env_name(option)} must be an integer, got {value!r}")


def get_env_list(option: str) -> List[str]:
    """Comma-separated variable as a list, blanks dropped."""
    value = os.getenv(env_name(option), "")
    return [v.strip() for v in value.split(",") if v.strip()]
