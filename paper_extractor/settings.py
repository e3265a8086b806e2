"""Persisted plugin settings (log directory, prompt, template, env file, summary flag)."""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path

SETTINGS_DIR = ".paper_extractor"
SETTINGS_FILE = "settings.json"

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass
class Settings:
    """Settings record with explicit defaults.

    log_dir, system_prompt_path and template_path are vault-relative;
    env_path is an absolute path outside the vault so secrets stay out of it.
    """

    log_dir: str = ""
    system_prompt_path: str = ""
    env_path: str = ""
    template_path: str = ""
    summary_enabled: bool = True


def default_settings_path(vault_root: str | Path) -> Path:
    return Path(vault_root) / SETTINGS_DIR / SETTINGS_FILE


def load_settings(path: str | Path) -> Settings:
    """Load settings, merging stored values over defaults.

    Missing or unreadable files yield defaults; unknown keys are ignored.
    """
    path = Path(path)
    if not path.exists():
        return Settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return Settings()
    if not isinstance(data, dict):
        return Settings()

    settings = Settings()
    for f in fields(Settings):
        if f.name not in data:
            continue
        value = data[f.name]
        if f.type is bool or f.type == "bool":
            if isinstance(value, bool):
                setattr(settings, f.name, value)
        elif isinstance(value, str):
            setattr(settings, f.name, value.strip())
    return settings


def save_settings(settings: Settings, path: str | Path) -> None:
    """Save settings as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), ensure_ascii=False, indent=2), encoding="utf-8")


def update_setting(settings: Settings, key: str, raw_value: str) -> Settings:
    """Set one field from its string form.

    Raises:
        ValueError: For an unknown key or an unparseable boolean
    """
    known = {f.name: f for f in fields(Settings)}
    if key not in known:
        raise ValueError(f"Unknown setting: {key}")

    if known[key].type is bool or known[key].type == "bool":
        lowered = raw_value.strip().lower()
        if lowered in TRUE_VALUES:
            setattr(settings, key, True)
        elif lowered in FALSE_VALUES:
            setattr(settings, key, False)
        else:
            raise ValueError(f"Not a boolean: {raw_value}")
    else:
        setattr(settings, key, raw_value.strip())
    return settings
