"""Minispace: multi-tenant personal sites with a cached data layer."""

from .app import create_app as create_app
from .cache import DataCache as DataCache
from .config import MinispaceConfig as MinispaceConfig
from .preview import PreviewStore as PreviewStore
from .routes import add_routes as add_routes

__all__ = [
    "DataCache",
    "MinispaceConfig",
    "PreviewStore",
    "add_routes",
    "create_app",
]
