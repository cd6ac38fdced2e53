from .context import ConnectionInfoContext, connection_info
from .join import CatalogEntry, ConnectionInfo, catalog_entries, join, remote_variable_names

__all__ = [
    "CatalogEntry",
    "ConnectionInfo",
    "ConnectionInfoContext",
    "catalog_entries",
    "connection_info",
    "join",
    "remote_variable_names",
]
