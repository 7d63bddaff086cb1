from __future__ import annotations

from PHARMABASE.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)
from PHARMABASE.server.utils.configurations.server import (
    DatabaseSettings,
    ExternalDataSettings,
    FastAPISettings,
    IngestionSettings,
    QuerySettings,
    ServerSettings,
    build_server_settings,
    get_server_settings,
    server_settings,
)

__all__ = [
    "ensure_mapping",
    "load_configuration_data",
    "DatabaseSettings",
    "ExternalDataSettings",
    "FastAPISettings",
    "IngestionSettings",
    "QuerySettings",
    "ServerSettings",
    "build_server_settings",
    "get_server_settings",
    "server_settings",
]
