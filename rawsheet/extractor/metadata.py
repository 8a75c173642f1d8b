"""MetadataReader: exposure fields and embedded thumbnails from raw files."""

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from rawsheet.extractor.normalize import normalize_output
from rawsheet.extractor.parser import get_first_value, parse_decimal, parse_rational
from rawsheet.models import (
    NO_EXIF_DATA,
    ExposureSummary,
    NoExifData,
    RawImageFile,
    ThumbnailResult,
)


logger = logging.getLogger(__name__)

EXPOSURE_FIELDS = ("ExposureTime", "FNumber", "FocalLength")


class MetadataUnavailable(Exception):
    """Raised when the metadata capability is not loaded or failed."""


class MetadataCapability(Protocol):
    """Protocol for metadata extraction backends."""

    async def parse(self, file: RawImageFile, fields: Sequence[str]) -> dict | None:
        """Return the requested fields that are present, or None."""

    async def thumbnail(self, file: RawImageFile) -> bytes | str | None:
        """Return the embedded preview as a buffer or URL string, or None."""


def summarize_exposure(fields: Mapping) -> ExposureSummary:
    """Build an ExposureSummary from ExposureTime/FNumber/FocalLength values."""
    return ExposureSummary(
        shutter_speed=parse_rational(get_first_value(fields, "ExposureTime")),
        aperture=parse_decimal(get_first_value(fields, "FNumber")),
        focal_length=parse_decimal(get_first_value(fields, "FocalLength")),
    )


class MetadataReader:
    """Reads exposure settings and embedded previews through a metadata capability."""

    def __init__(self, capability: MetadataCapability | None) -> None:
        self.capability = capability

    @property
    def available(self) -> bool:
        return self.capability is not None

    async def extract_thumbnail(self, file: RawImageFile) -> ThumbnailResult:
        """
        Return the embedded thumbnail in canonical form.

        Raises MetadataUnavailable if the capability is missing or fails; an
        output that cannot be normalized is ABSENT rather than an error.
        """
        capability = self._require_capability()
        try:
            output = await capability.thumbnail(file)
        except Exception as e:
            raise MetadataUnavailable(f"Thumbnail extraction failed for {file.filename}: {e}") from e
        return await normalize_output(output)

    async def extract_exposure(self, file: RawImageFile) -> ExposureSummary | NoExifData:
        capability = self._require_capability()
        try:
            fields = await capability.parse(file, list(EXPOSURE_FIELDS))
        except Exception as e:
            raise MetadataUnavailable(f"EXIF parse failed for {file.filename}: {e}") from e

        if not fields:
            logger.debug("No EXIF fields returned for %s", file.filename)
            return NO_EXIF_DATA
        return summarize_exposure(fields)

    def _require_capability(self) -> MetadataCapability:
        if self.capability is None:
            raise MetadataUnavailable("Metadata capability is not loaded")
        return self.capability
