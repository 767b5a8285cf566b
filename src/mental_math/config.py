"""User configuration: YAML config file plus settings stored in the database."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from mental_math.db import DEFAULT_DB_PATH, get_connection
from mental_math.models import Difficulty, Operation

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = str(Path.home() / ".mental_math" / "config.yaml")


class ConfigError(ValueError):
    pass


@dataclass
class Config:
    db_path: str = DEFAULT_DB_PATH
    user: str = "local"
    default_difficulty: Difficulty = Difficulty.EASY
    default_operations: list = field(default_factory=lambda: [Operation.ADD])
    log_level: str = "WARNING"


def _parse_operations(raw) -> list:
    if isinstance(raw, str):
        raw = [raw]
    try:
        ops = [Operation(str(op).strip().lower()) for op in raw]
    except ValueError as e:
        raise ConfigError(f"Unknown operation in config: {e}") from e
    if not ops:
        raise ConfigError("default_operations must list at least one operation")
    return ops


def load_config(path: Optional[str] = None) -> Config:
    """Read the YAML config file. A missing file yields the defaults."""
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        return Config()
    data = yaml.safe_load(config_path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    config = Config()
    if "db_path" in data:
        config.db_path = str(Path(data["db_path"]).expanduser())
    if "user" in data:
        config.user = str(data["user"])
    if "default_difficulty" in data:
        try:
            config.default_difficulty = Difficulty(str(data["default_difficulty"]).lower())
        except ValueError as e:
            raise ConfigError(f"Unknown difficulty in config: {e}") from e
    if "default_operations" in data:
        config.default_operations = _parse_operations(data["default_operations"])
    if "log_level" in data:
        config.log_level = str(data["log_level"]).upper()
    logger.debug("Loaded config from %s", config_path)
    return config


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_preferred_difficulty(db_path: str, config: Config) -> Difficulty:
    return Difficulty(get_setting(db_path, "difficulty", config.default_difficulty.value))


def get_preferred_operations(db_path: str, config: Config) -> list:
    stored = get_setting(db_path, "operations")
    if not stored:
        return list(config.default_operations)
    return _parse_operations(stored.split(","))


def save_preferences(db_path: str, operations: list, difficulty: Difficulty) -> None:
    set_setting(db_path, "operations", ",".join(Operation(op).value for op in operations))
    set_setting(db_path, "difficulty", Difficulty(difficulty).value)
