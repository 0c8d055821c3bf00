"""Application settings.

Settings are read from a TOML file. A few values can be overridden with
environment variables so the Anthropic API key doesn't have to live in the
settings file.
"""

import dataclasses
import os
import pathlib
import tomllib
from typing import Any, Optional


DB_FILE_NAME = "bridgeattend.db"
CONFIG_FILE_NAME = "bridgeattend.toml"
PHOTO_FOLDER_NAME = "photos"

DB_ENV_VAR = "BRIDGEATTEND_DB"
API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"


class SettingsError(Exception):
    """Settings file is missing or contains invalid values."""


_CONFIG_TEMPLATE = """\
# Bridge Attendance settings

# Sqlite database file. Relative paths are relative to this file.
db_path = "{db_file}"

# Folder where photographed sign-in sheets are stored.
photo_folder = "{photo_folder}"

# Vision model used to read sign-in sheets. The API key is normally taken
#   from the ANTHROPIC_API_KEY environment variable.
# anthropic_api_key = ""
vision_model = "claude-sonnet-4-20250514"
max_tokens = 4096

# Largest photo accepted for scanning, in bytes.
max_photo_bytes = 10485760

# Teacher recorded on new events when none is given.
default_teacher = "Rick"

log_level = "INFO"
"""


@dataclasses.dataclass
class Settings:
    """Values that control database location and the vision model."""

    db_path: Optional[pathlib.Path] = None
    """Sqlite database file."""
    photo_folder: pathlib.Path = pathlib.Path(PHOTO_FOLDER_NAME)
    """Root folder of the photo store."""
    anthropic_api_key: Optional[str] = None
    """Key for the Anthropic API. Scanning is disabled without it."""
    vision_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    max_photo_bytes: int = 10 * 1024 * 1024
    default_teacher: str = "Rick"
    log_level: str = "INFO"
    config_path: Optional[pathlib.Path] = None
    """TOML file the settings were loaded from, if any."""

    @classmethod
    def load(
        cls, config_path: Optional[pathlib.Path] = None, use_env: bool = True
    ) -> "Settings":
        """Read settings from a TOML file and apply environment overrides."""
        values: dict[str, Any] = {}
        if config_path is not None:
            if not config_path.exists():
                raise SettingsError(f"Settings file {config_path} does not exist.")
            try:
                with open(config_path, "rb") as tfile:
                    values = tomllib.load(tfile)
            except tomllib.TOMLDecodeError as err:
                raise SettingsError(f"Invalid settings file {config_path}: {err}")
        field_names = {field.name for field in dataclasses.fields(cls)}
        unknown = set(values) - field_names
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        settings = cls(**values)
        settings.config_path = config_path
        base_folder = config_path.parent if config_path else pathlib.Path.cwd()
        if settings.db_path is not None:
            settings.db_path = base_folder / settings.db_path
        settings.photo_folder = base_folder / settings.photo_folder
        if use_env:
            if db_env := os.environ.get(DB_ENV_VAR):
                settings.db_path = pathlib.Path(db_env)
            if key_env := os.environ.get(API_KEY_ENV_VAR):
                settings.anthropic_api_key = key_env
        return settings

    @staticmethod
    def create_new_config_file(config_path: pathlib.Path) -> None:
        """Write a settings file with default values."""
        if config_path.exists():
            raise SettingsError(f"Settings file {config_path} already exists.")
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                db_file=DB_FILE_NAME, photo_folder=PHOTO_FOLDER_NAME
            )
        )


settings = Settings()
"""Settings used by the command line and terminal UI entry points."""
