"""Layered thumbnail resolution for raw files."""

from rawsheet.resolver.resolver import ResolverStats, ThumbnailResolver

__all__ = ["ResolverStats", "ThumbnailResolver"]
