from __future__ import annotations

from pathlib import Path

from nuget_settings import Settings
from nuget_settings.utility import (
    delete_config_value,
    delete_value,
    get_config_value,
    get_credentials,
    get_value_for_add_item,
    set_config_value,
)
from tests.utils import config_body, expected, write_config


def test_set_and_get_config_value(tmp_path: Path) -> None:
    path = write_config(tmp_path, "")
    settings = Settings.from_directory(tmp_path)

    set_config_value(settings, "globalPackagesFolder", "packages")

    assert get_config_value(settings, "globalPackagesFolder") == "packages"
    assert get_config_value(settings, "globalPackagesFolder", is_path=True) == str(tmp_path / "packages")
    assert config_body(path) == expected('<config><add key="globalPackagesFolder" value="packages" /></config>')


def test_missing_values_are_none(tmp_path: Path) -> None:
    write_config(tmp_path, '<config><add key="a" value="1" /></config>')
    settings = Settings.from_directory(tmp_path)

    assert get_config_value(settings, "b") is None
    assert get_value_for_add_item(settings, "nothing", "a") is None


def test_delete_config_value(tmp_path: Path) -> None:
    path = write_config(tmp_path, '<config><add key="a" value="1" /><add key="b" value="2" /></config>')
    settings = Settings.from_directory(tmp_path)

    assert delete_config_value(settings, "a")
    assert not delete_config_value(settings, "missing")
    assert config_body(path) == expected('<config><add key="b" value="2" /></config>')


def test_delete_value_by_attribute(tmp_path: Path) -> None:
    write_config(tmp_path, '<packageSources><add key="feed" value="https://example.org/v3" /></packageSources>')
    settings = Settings.from_directory(tmp_path)

    assert delete_value(settings, "packageSources", "value", "https://example.org/v3")
    assert settings.get_section("packageSources") is None
    assert not delete_value(settings, "packageSources", "key", "feed")


def test_get_credentials(tmp_path: Path) -> None:
    write_config(
        tmp_path,
        """
<packageSourceCredentials>
  <contoso>
    <add key="Username" value="user" />
    <add key="ClearTextPassword" value="secret" />
  </contoso>
</packageSourceCredentials>
""",
    )
    settings = Settings.from_directory(tmp_path)

    credentials = get_credentials(settings, "contoso")

    assert credentials is not None
    assert credentials.username == "user"
    assert credentials.password == "secret"
    assert credentials.is_password_clear_text
    assert get_credentials(settings, "other") is None
