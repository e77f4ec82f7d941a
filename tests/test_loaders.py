from __future__ import annotations

import gc
from pathlib import Path

import pytest

from nuget_settings import (
    AddItem,
    ImmutableSettings,
    InvalidSettingOperation,
    MachineWideSettings,
    NullSettings,
    SettingsLoadingContext,
    UnsupportedSettingOperation,
    load_default_settings,
    load_immutable_settings_given_config_paths,
    load_machine_wide_settings,
    load_settings,
    load_settings_given_config_paths,
)
from nuget_settings.discovery import settings_files_in_hierarchy
from nuget_settings.paths import (
    get_file_name_and_root,
    machine_wide_settings_base_dir,
    resolve_path_from_origin,
    user_settings_dir,
)
from tests.utils import config_body, expected, write_config


def _value(settings, section: str, key: str) -> str | None:
    found = settings.get_section(section)
    if found is None:
        return None
    item = found.get_first_item_with_attribute("key", key)
    return item.value if item is not None else None


# -- discovery ----------------------------------------------------------------

def test_hierarchy_is_listed_topmost_first(tmp_path: Path) -> None:
    write_config(tmp_path / "a", "")
    write_config(tmp_path / "a" / "b" / "c", "")
    (tmp_path / "a" / "b" / "c" / "d").mkdir()

    found = settings_files_in_hierarchy(tmp_path / "a" / "b" / "c" / "d")

    assert found[-2:] == [
        tmp_path / "a" / "NuGet.Config",
        tmp_path / "a" / "b" / "c" / "NuGet.Config",
    ]


def test_lowercase_file_name_is_preferred(tmp_path: Path) -> None:
    write_config(tmp_path, "", name="nuget.config")
    found = settings_files_in_hierarchy(tmp_path)
    assert found[-1].name.lower() == "nuget.config"


def test_machine_wide_walks_from_deepest_directory(tmp_path: Path) -> None:
    root = tmp_path / "machine"
    write_config(tmp_path, "", name="outside.config")
    write_config(root, "", name="a1.config")
    write_config(root, "", name="a2.xconfig")
    write_config(root / "IDE", "", name="a3.config")
    write_config(root / "IDE" / "Version", "", name="a4.config")
    write_config(root / "IDE" / "Version", "", name="a5_uppercase.Config")
    write_config(root / "IDE" / "Version" / "Deeper", "", name="a6.config")

    settings = load_machine_wide_settings(root, "IDE", "Version")

    assert settings.get_config_file_paths() == [
        root / "IDE" / "Version" / "a4.config",
        root / "IDE" / "Version" / "a5_uppercase.Config",
        root / "IDE" / "a3.config",
        root / "a1.config",
    ]
    assert all(f.is_machine_wide for f in settings.priority)


def test_machine_wide_without_files_is_null(tmp_path: Path) -> None:
    assert isinstance(load_machine_wide_settings(tmp_path / "none"), NullSettings)


def test_machine_wide_settings_default_root_honours_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("NUGET_MACHINE_CONFIG_DIR", str(tmp_path))
    write_config(tmp_path, '<Section><add key="k" value="machine" /></Section>', name="m.config")

    machine = MachineWideSettings()

    assert machine.root == tmp_path.resolve()
    assert _value(machine.settings, "Section", "k") == "machine"
    assert machine.settings is machine.settings


# -- user-wide config ---------------------------------------------------------

def test_user_config_is_created_with_default_source(tmp_path: Path) -> None:
    user = tmp_path / "user"
    (tmp_path / "project").mkdir()

    settings = load_settings(tmp_path / "project", user_settings_directory=user)

    assert (user / "NuGet.Config").exists()
    assert (user / "nugetorgadd.trk").exists()
    assert _value(settings, "packageSources", "nuget.org") == "https://api.nuget.org/v3/index.json"


def test_default_source_is_added_only_once(tmp_path: Path) -> None:
    user = tmp_path / "user"
    user.mkdir()
    (user / "nugetorgadd.trk").touch()
    (tmp_path / "project").mkdir()

    settings = load_settings(tmp_path / "project", user_settings_directory=user)

    assert (user / "NuGet.Config").exists()
    assert settings.get_section("packageSources") is None


def test_existing_empty_user_config_is_left_alone(tmp_path: Path) -> None:
    user = tmp_path / "user"
    path = write_config(user, "")
    (tmp_path / "project").mkdir()

    settings = load_settings(tmp_path / "project", user_settings_directory=user)
    settings.save_to_disk()

    assert settings.get_section("packageSources") is None
    assert config_body(path) == expected("")


def test_user_config_dir_comes_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("NUGET_USER_CONFIG_DIR", str(tmp_path / "env-user"))
    (tmp_path / "project").mkdir()

    settings = load_default_settings(tmp_path / "project")

    assert settings.get_config_file_paths() == [(tmp_path / "env-user").resolve() / "NuGet.Config"]
    assert user_settings_dir() == (tmp_path / "env-user").resolve()


def test_machine_dir_comes_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("NUGET_MACHINE_CONFIG_DIR", str(tmp_path))
    assert machine_wide_settings_base_dir() == tmp_path.resolve()


def test_additional_user_configs_are_read_only(tmp_path: Path) -> None:
    user = tmp_path / "user"
    write_config(user, "")
    write_config(user / "config", '<Section><add key="k" value="a" /></Section>', name="a.config")
    write_config(user / "config", '<Section><add key="k" value="b" /><add key="m" value="b" /></Section>', name="b.config")
    (tmp_path / "project").mkdir()

    settings = load_settings(tmp_path / "project", user_settings_directory=user)

    assert _value(settings, "Section", "k") == "a"
    assert _value(settings, "Section", "m") == "b"
    with pytest.raises(InvalidSettingOperation, match="uneditable"):
        settings.remove("Section", AddItem("k", ""))

    settings.add_or_update("Section", AddItem("n", "1"))
    settings.save_to_disk()
    assert config_body(user / "NuGet.Config") == expected('<Section><add key="n" value="1" /></Section>')


def test_full_priority_order(tmp_path: Path) -> None:
    write_config(tmp_path / "machine", "", name="m.config")
    write_config(tmp_path / "user", "")
    write_config(tmp_path / "user" / "config", "", name="extra.config")
    write_config(tmp_path / "repo", "")
    (tmp_path / "repo" / "src").mkdir()

    settings = load_settings(
        tmp_path / "repo" / "src",
        machine_wide_settings=MachineWideSettings(tmp_path / "machine"),
        user_settings_directory=tmp_path / "user",
    )

    assert settings.get_config_file_paths() == [
        tmp_path / "repo" / "NuGet.Config",
        tmp_path / "user" / "NuGet.Config",
        tmp_path / "user" / "config" / "extra.config",
        tmp_path / "machine" / "m.config",
    ]


def test_config_file_name_ignores_everything_else(tmp_path: Path) -> None:
    write_config(tmp_path / "machine", '<Section><add key="m" value="1" /></Section>', name="m.config")
    write_config(tmp_path / "dir", '<Section><add key="h" value="1" /></Section>')
    write_config(tmp_path / "dir", '<Section><add key="k" value="1" /></Section>', name="my.config")

    settings = load_settings(
        tmp_path / "dir",
        config_file_name="my.config",
        machine_wide_settings=MachineWideSettings(tmp_path / "machine"),
        user_settings_directory=tmp_path / "user",
    )

    assert settings.get_config_file_paths() == [tmp_path / "dir" / "my.config"]
    assert _value(settings, "Section", "k") == "1"
    assert _value(settings, "Section", "m") is None
    assert not (tmp_path / "user").exists()


def test_missing_config_file_name(tmp_path: Path) -> None:
    with pytest.raises(InvalidSettingOperation) as info:
        load_settings(tmp_path, config_file_name="missing.config")
    assert str(info.value) == f"File '{tmp_path / 'missing.config'}' does not exist."


# -- explicit paths -----------------------------------------------------------

def test_given_config_paths_first_wins(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<Section><add key="k" value="a" /></Section>')
    b = write_config(tmp_path / "b", '<Section><add key="k" value="b" /><add key="only" value="b" /></Section>')

    settings = load_settings_given_config_paths([a, b])

    assert settings.get_config_file_paths() == [a, b]
    assert _value(settings, "Section", "k") == "a"
    assert _value(settings, "Section", "only") == "b"


def test_given_config_paths_empty_is_null() -> None:
    assert isinstance(load_settings_given_config_paths([]), NullSettings)


def test_immutable_settings_reject_changes(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<Section><add key="k" value="a" /></Section>')

    settings = load_immutable_settings_given_config_paths([a], SettingsLoadingContext())

    assert isinstance(settings, ImmutableSettings)
    assert _value(settings, "Section", "k") == "a"
    assert settings.get_config_file_paths() == [a]
    with pytest.raises(UnsupportedSettingOperation):
        settings.add_or_update("Section", AddItem("k", "b"))
    with pytest.raises(UnsupportedSettingOperation):
        settings.remove("Section", AddItem("k", ""))
    with pytest.raises(NotImplementedError):
        settings.save_to_disk()


def test_loading_context_caches_files(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<Section><add key="k" value="a" /></Section>')
    context = SettingsLoadingContext()

    first = context.get_or_create_settings_file(a)
    second = context.get_or_create_settings_file(tmp_path / "a" / "." / "NuGet.Config")

    assert first is second
    assert len(context) == 1


def test_loading_context_is_shared_between_loads(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<Section><add key="k" value="a" /></Section>')
    context = SettingsLoadingContext()
    load_immutable_settings_given_config_paths([a], context)

    a.write_text("not xml", encoding="utf-8")
    settings = load_immutable_settings_given_config_paths([a], context)

    assert _value(settings, "Section", "k") == "a"


# -- path helpers -------------------------------------------------------------

def test_resolve_path_from_origin(tmp_path: Path) -> None:
    assert resolve_path_from_origin(tmp_path, "") == ""
    assert resolve_path_from_origin(tmp_path, None) is None
    assert resolve_path_from_origin(tmp_path, "pkgs") == str(tmp_path / "pkgs")
    assert resolve_path_from_origin(tmp_path, str(tmp_path / "abs")) == str(tmp_path / "abs")
    assert resolve_path_from_origin(tmp_path, "https://example.org/v3") == "https://example.org/v3"


def test_get_file_name_and_root(tmp_path: Path) -> None:
    assert get_file_name_and_root(tmp_path, "sub/my.config") == ("my.config", tmp_path / "sub")
    assert get_file_name_and_root(None, tmp_path / "x.config") == ("x.config", tmp_path)


def test_shared_context_keeps_earlier_settings_intact(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<S><add key="ka" value="a" /></S>')
    b = write_config(tmp_path / "b", '<S><add key="kb" value="b" /></S>')
    c = write_config(tmp_path / "c", '<S><add key="kc" value="c" /></S>')
    context = SettingsLoadingContext()

    first = load_settings_given_config_paths([a, b], context)
    second = load_settings_given_config_paths([c, a], context)

    assert first.get_config_file_paths() == [a, b]
    assert second.get_config_file_paths() == [c, a]

    first.add_or_update("S", AddItem("new", "1"))
    first.save_to_disk()

    assert config_body(b) == expected('<S><add key="kb" value="b" /><add key="new" value="1" /></S>')
    assert config_body(a) == expected('<S><add key="ka" value="a" /></S>')
    assert _value(first, "S", "kb") == "b"
    assert _value(first, "S", "new") == "1"
    assert _value(second, "S", "kc") == "c"


def test_discarded_settings_stop_listening(tmp_path: Path) -> None:
    a = write_config(tmp_path / "a", '<S><add key="ka" value="a" /></S>')
    context = SettingsLoadingContext()
    settings_file = context.get_or_create_settings_file(a)

    kept = load_settings_given_config_paths([a], context)
    dropped = load_settings_given_config_paths([a], context)
    assert len(settings_file.changed) == 2

    del dropped
    gc.collect()

    assert len(settings_file.changed) == 1
    settings_file.add_or_update("S", AddItem("kb", "b"))
    assert _value(kept, "S", "kb") == "b"


def test_empty_user_config_goes_through_loading_context(tmp_path: Path) -> None:
    user = tmp_path / "user"
    user.mkdir()
    (user / "nugetorgadd.trk").touch()
    (tmp_path / "project").mkdir()
    context = SettingsLoadingContext()

    first = load_settings(tmp_path / "project", user_settings_directory=user, settings_loading_context=context)
    second = load_settings(tmp_path / "project", user_settings_directory=user, settings_loading_context=context)

    cached = context.get_or_create_settings_file(user / "NuGet.Config")
    assert list(first.priority) == [cached]
    assert list(second.priority)[0] is cached
    assert len(context) == 1
    assert cached.get_section("packageSources") is None
