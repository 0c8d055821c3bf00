"""Test reading settings files."""

import pathlib

import pytest

import rich  # noqa: F401

from bridgeattend import config


def test_new_config_file(tmp_path: pathlib.Path) -> None:
    """A new settings file loads with default values."""
    # Arrange
    path = tmp_path / config.CONFIG_FILE_NAME
    config.Settings.create_new_config_file(path)
    # Act
    settings = config.Settings.load(path, use_env=False)
    # Assert
    assert settings.config_path == path
    assert settings.db_path == tmp_path / config.DB_FILE_NAME
    assert settings.photo_folder == tmp_path / config.PHOTO_FOLDER_NAME
    assert settings.anthropic_api_key is None
    assert settings.default_teacher == "Rick"
    assert settings.max_photo_bytes == 10 * 1024 * 1024
    with pytest.raises(config.SettingsError):
        config.Settings.create_new_config_file(path)


def test_environment_overrides(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The API key and database can come from the environment."""
    # Arrange
    path = tmp_path / "settings.toml"
    path.write_text('db_path = "a.db"\nanthropic_api_key = "from-file"\n')
    monkeypatch.setenv(config.API_KEY_ENV_VAR, "from-env")
    monkeypatch.setenv(config.DB_ENV_VAR, str(tmp_path / "env.db"))
    # Act
    settings = config.Settings.load(path)
    # Assert
    assert settings.anthropic_api_key == "from-env"
    assert settings.db_path == tmp_path / "env.db"


@pytest.mark.parametrize(
    "content",
    ['vision_modle = "x"\n', "db_path = \n"],
)
def test_invalid_config_file(tmp_path: pathlib.Path, content: str) -> None:
    """Unknown keys and invalid TOML are rejected."""
    # Arrange
    path = tmp_path / "settings.toml"
    path.write_text(content)
    # Act / Assert
    with pytest.raises(config.SettingsError):
        config.Settings.load(path, use_env=False)


def test_missing_config_file(tmp_path: pathlib.Path) -> None:
    with pytest.raises(config.SettingsError):
        config.Settings.load(tmp_path / "missing.toml")
