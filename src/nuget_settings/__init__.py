"""Hierarchical NuGet.Config settings: discovery, merging and write-back."""
from __future__ import annotations

from .base import AttributePolicy, SettingBase, SettingElement, SettingText
from .errors import (
    InvalidSettingOperation,
    NuGetConfigurationError,
    NuGetSettingsError,
    UnsupportedSettingOperation,
)
from .items import AddItem, ClearItem, CredentialsItem, SettingItem, SourceItem, UnknownItem
from .loading_context import SettingsLoadingContext
from .sections import (
    NuGetConfiguration,
    ParsedSettingSection,
    SettingsGroup,
    SettingSection,
    VirtualSettingSection,
)
from .settings import (
    BaseSettings,
    ImmutableSettings,
    MachineWideSettings,
    NullSettings,
    Settings,
    load_default_settings,
    load_immutable_settings_given_config_paths,
    load_machine_wide_settings,
    load_settings,
    load_settings_given_config_paths,
)
from .settings_file import SettingsFile

__all__ = [
    "AddItem",
    "AttributePolicy",
    "BaseSettings",
    "ClearItem",
    "CredentialsItem",
    "ImmutableSettings",
    "InvalidSettingOperation",
    "MachineWideSettings",
    "NuGetConfiguration",
    "NuGetConfigurationError",
    "NuGetSettingsError",
    "NullSettings",
    "ParsedSettingSection",
    "SettingBase",
    "SettingElement",
    "SettingItem",
    "SettingSection",
    "SettingText",
    "Settings",
    "SettingsFile",
    "SettingsGroup",
    "SettingsLoadingContext",
    "SourceItem",
    "UnknownItem",
    "UnsupportedSettingOperation",
    "VirtualSettingSection",
    "load_default_settings",
    "load_immutable_settings_given_config_paths",
    "load_machine_wide_settings",
    "load_settings",
    "load_settings_given_config_paths",
]
