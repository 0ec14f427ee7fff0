"""Data providers for the raw margin event collections."""
from .api import ApiProvider
from .errors import DataSourceError
from .service import DataService, build_provider
from .static import StaticProvider, export_snapshot

__all__ = [
    "ApiProvider",
    "DataService",
    "DataSourceError",
    "StaticProvider",
    "build_provider",
    "export_snapshot",
]
