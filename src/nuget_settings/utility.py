"""Convenience helpers for common reads and writes."""
from __future__ import annotations

from .constants import CONFIG_SECTION, CREDENTIALS_SECTION, KEY
from .items import AddItem, CredentialsItem
from .settings import BaseSettings


def get_value_for_add_item(
    settings: BaseSettings, section: str, key: str, is_path: bool = False
) -> str | None:
    """Return the value of ``<add key="key">`` in *section*.

    With *is_path* the value is resolved against the file that defines it.
    """
    found = settings.get_section(section)
    if found is None:
        return None
    item = found.get_first_item_with_attribute(KEY, key, AddItem)
    if item is None:
        return None
    return item.get_value_as_path() if is_path else item.value


def delete_value(settings: BaseSettings, section: str, attribute_key: str, attribute_value: str) -> bool:
    found = settings.get_section(section)
    if found is None:
        return False
    item = found.get_first_item_with_attribute(attribute_key, attribute_value)
    if item is None:
        return False
    return settings.remove(section, item)


def get_config_value(settings: BaseSettings, key: str, is_path: bool = False) -> str | None:
    return get_value_for_add_item(settings, CONFIG_SECTION, key, is_path)


def set_config_value(settings: BaseSettings, key: str, value: str) -> None:
    """Store *key* in the ``config`` section and save."""
    settings.add_or_update(CONFIG_SECTION, AddItem(key, value))
    settings.save_to_disk()


def delete_config_value(settings: BaseSettings, key: str) -> bool:
    removed = delete_value(settings, CONFIG_SECTION, KEY, key)
    if removed:
        settings.save_to_disk()
    return removed


def get_credentials(settings: BaseSettings, source_name: str) -> CredentialsItem | None:
    section = settings.get_section(CREDENTIALS_SECTION)
    if section is None:
        return None
    for item in section.items:
        if isinstance(item, CredentialsItem) and item.element_name == source_name:
            return item
    return None
