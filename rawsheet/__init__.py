"""rawsheet - Contact sheets with exposure captions for CR2 raw files."""

__version__ = "0.1.0"

from rawsheet.models import RawImageFile, ResolutionOutcome
from rawsheet.resolver import ThumbnailResolver

__all__ = ["RawImageFile", "ResolutionOutcome", "ThumbnailResolver"]
