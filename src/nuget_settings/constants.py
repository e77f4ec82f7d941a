"""Names and defaults shared by the NuGet settings engine."""
from __future__ import annotations

DEFAULT_SETTINGS_FILE_NAME = "NuGet.Config"
ADDITIONAL_USER_CONFIG_DIR = "config"
MACHINE_WIDE_CONFIG_EXTENSION = ".config"
# Created next to the user-wide config once the default feed was written.
ADD_V3_TRACK_FILE = "nugetorgadd.trk"

FEED_NAME = "nuget.org"
V3_FEED_URL = "https://api.nuget.org/v3/index.json"
V3_PROTOCOL_VERSION = "3"

# Element names
CONFIGURATION = "configuration"
ADD = "add"
CLEAR = "clear"

# Section names
PACKAGE_SOURCES = "packageSources"
DISABLED_PACKAGE_SOURCES = "disabledPackageSources"
ACTIVE_PACKAGE_SOURCE = "activePackageSource"
CREDENTIALS_SECTION = "packageSourceCredentials"
CONFIG_SECTION = "config"

# Attribute names
KEY = "key"
VALUE = "value"
PROTOCOL_VERSION = "protocolVersion"

# Keys inside a credentials item
USERNAME = "Username"
PASSWORD = "Password"
CLEAR_TEXT_PASSWORD = "ClearTextPassword"
VALID_AUTHENTICATION_TYPES = "ValidAuthenticationTypes"

DEFAULT_CONFIG = f"""<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <{PACKAGE_SOURCES}>
    <add key="{FEED_NAME}" value="{V3_FEED_URL}" protocolVersion="{V3_PROTOCOL_VERSION}" />
  </{PACKAGE_SOURCES}>
</configuration>
""".encode("utf-8")

EMPTY_CONFIG = b"""<?xml version="1.0" encoding="utf-8"?>
<configuration>
</configuration>
"""
