"""Data models for thumbnail resolution."""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from pathlib import Path


DEFAULT_MIME_TYPE = "image/jpeg"


class UnexpectedIOFailure(Exception):
    """Raised when the bytes of a raw file cannot be read."""


@dataclass(frozen=True)
class RawImageFile:
    """A raw file selected for resolution: a byte source plus its filename."""

    filename: str
    path: Path | None = None
    data: bytes | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> "RawImageFile":
        path = Path(path)
        return cls(filename=path.name, path=path)

    async def read_bytes(self) -> bytes:
        """Return the file contents, reading from disk if needed."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise UnexpectedIOFailure(f"{self.filename} has no byte source")
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise UnexpectedIOFailure(f"Could not read {self.path}: {e}") from e


@dataclass(frozen=True)
class ThumbnailImage:
    """A preview image in canonical form."""

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class Absent:
    """No thumbnail could be produced."""


ABSENT = Absent()

ThumbnailResult = ThumbnailImage | Absent


@dataclass(frozen=True)
class ExposureSummary:
    """Capture settings; each field is independently optional."""

    shutter_speed: Fraction | None = None
    aperture: Decimal | None = None
    focal_length: Decimal | None = None


@dataclass(frozen=True)
class NoExifData:
    """Metadata could not be read at all (distinct from all fields missing)."""


NO_EXIF_DATA = NoExifData()


class ThumbnailSource(Enum):
    """Extraction path that produced a thumbnail."""

    METADATA = "metadata"
    DECODER = "decoder"
    NONE = "none"


@dataclass(frozen=True)
class ResolutionOutcome:
    """Resolution result for one raw file."""

    filename: str
    thumbnail: ThumbnailResult
    exposure: ExposureSummary | NoExifData
    source: ThumbnailSource = ThumbnailSource.NONE

    @property
    def has_thumbnail(self) -> bool:
        return isinstance(self.thumbnail, ThumbnailImage)
