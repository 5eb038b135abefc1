"""Authentication providers for Minispace."""

from .base import AuthProvider
from .dev import DevAuthProvider

__all__ = [
    "AuthProvider",
    "DevAuthProvider",
]
