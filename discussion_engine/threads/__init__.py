"""Thread reconstruction and client-side thread caching."""

from .builder import build_forest, walk
from .cache import ThreadCache


__all__ = ["ThreadCache", "build_forest", "walk"]
