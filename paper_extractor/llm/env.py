"""Reading the external provider config (.env-style key=value file)."""

from enum import Enum
from pathlib import Path

from dotenv import dotenv_values

from ..audit_log import format_error_for_log
from ..errors import ConfigError


class ProviderKind(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    PAGEINDEX = "pageindex"


def read_env_file(env_path: str) -> dict[str, str]:
    """Parse the env file into a flat dict of trimmed strings.

    The file is read fresh on every call and never loaded into os.environ.

    Raises:
        ConfigError: ENV_READ_FAILED if the file is missing or unreadable
    """
    path = Path(env_path).expanduser()
    if not path.is_file():
        raise ConfigError("ENV_READ_FAILED", f"env file not found: {path}")

    try:
        raw = dotenv_values(path, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        name, _, summary = format_error_for_log(e)
        raise ConfigError("ENV_READ_FAILED", f"{name} {summary}") from e

    return {key: (value or "").strip() for key, value in raw.items() if key}


def coerce_provider_kind(value: str | None) -> ProviderKind | None:
    """Map LLM_PROVIDER to a known kind; None if unrecognised."""
    try:
        return ProviderKind((value or "").strip().lower())
    except ValueError:
        return None
