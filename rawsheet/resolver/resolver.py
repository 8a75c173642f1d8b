"""ThumbnailResolver: layered thumbnail extraction for batches of raw files."""

import logging
import time
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field

from rawsheet.extractor.decoder import RawDecoder
from rawsheet.extractor.metadata import MetadataReader
from rawsheet.models import (
    ABSENT,
    NO_EXIF_DATA,
    ExposureSummary,
    NoExifData,
    RawImageFile,
    ResolutionOutcome,
    ThumbnailImage,
    ThumbnailResult,
    ThumbnailSource,
    UnexpectedIOFailure,
)


logger = logging.getLogger(__name__)


@dataclass
class ResolverStats:
    """Statistics from a resolution run."""

    total_files: int = 0
    files_from_metadata: int = 0
    files_from_decoder: int = 0
    files_without_thumbnail: int = 0
    files_without_exif: int = 0
    io_failures: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time


class ThumbnailResolver:
    """
    Resolves one thumbnail and one exposure summary per raw file.

    The embedded metadata thumbnail is tried first; the raw decoder runs only
    when that path yields nothing. Files are processed one after another so
    outcomes keep the input order, and a failure never aborts the batch.
    """

    def __init__(self, metadata_reader: MetadataReader, raw_decoder: RawDecoder) -> None:
        self.metadata_reader = metadata_reader
        self.raw_decoder = raw_decoder
        self.stats = ResolverStats()

    async def resolve_batch(self, files: Iterable[RawImageFile]) -> list[ResolutionOutcome]:
        """Resolve every file, returning outcomes in input order."""
        return [outcome async for outcome in self.iter_resolve(files)]

    async def iter_resolve(self, files: Iterable[RawImageFile]) -> AsyncIterator[ResolutionOutcome]:
        """Yield outcomes one file at a time, in input order."""
        self.stats = ResolverStats()
        self.raw_decoder.reset_failed()
        if not self.metadata_reader.available:
            logger.warning("Metadata capability unavailable, using the raw decoder only")

        for file in files:
            yield await self.resolve(file)

        logger.info(
            "Resolved %d files: %d from metadata, %d from raw decoder, %d without thumbnail (%.1fs)",
            self.stats.total_files,
            self.stats.files_from_metadata,
            self.stats.files_from_decoder,
            self.stats.files_without_thumbnail,
            self.stats.elapsed_seconds,
        )

    async def resolve(self, file: RawImageFile) -> ResolutionOutcome:
        """Run the full extraction sequence for a single file."""
        self.stats.total_files += 1

        thumbnail, source = await self._resolve_thumbnail(file)
        exposure = await self._resolve_exposure(file)

        return ResolutionOutcome(
            filename=file.filename,
            thumbnail=thumbnail,
            exposure=exposure,
            source=source,
        )

    async def _resolve_thumbnail(self, file: RawImageFile) -> tuple[ThumbnailResult, ThumbnailSource]:
        thumbnail = await self._try_metadata_thumbnail(file)
        if isinstance(thumbnail, ThumbnailImage):
            self.stats.files_from_metadata += 1
            return thumbnail, ThumbnailSource.METADATA

        thumbnail = await self._try_decoder_thumbnail(file)
        if isinstance(thumbnail, ThumbnailImage):
            self.stats.files_from_decoder += 1
            return thumbnail, ThumbnailSource.DECODER

        self.stats.files_without_thumbnail += 1
        logger.warning("No thumbnail found for %s", file.filename)
        return ABSENT, ThumbnailSource.NONE

    async def _try_metadata_thumbnail(self, file: RawImageFile) -> ThumbnailResult:
        if not self.metadata_reader.available:
            return ABSENT
        try:
            return await self.metadata_reader.extract_thumbnail(file)
        except Exception as e:
            logger.warning("Metadata thumbnail failed for %s: %s", file.filename, e)
            return ABSENT

    async def _try_decoder_thumbnail(self, file: RawImageFile) -> ThumbnailResult:
        try:
            data = await file.read_bytes()
        except UnexpectedIOFailure as e:
            self.stats.io_failures += 1
            logger.error("Error reading %s: %s", file.filename, e)
            return ABSENT

        try:
            return await self.raw_decoder.extract_thumbnail(data)
        except Exception as e:
            logger.error("Raw decoder fallback failed for %s: %s", file.filename, e)
            return ABSENT

    async def _resolve_exposure(self, file: RawImageFile) -> ExposureSummary | NoExifData:
        if not self.metadata_reader.available:
            exposure = NO_EXIF_DATA
        else:
            try:
                exposure = await self.metadata_reader.extract_exposure(file)
            except Exception as e:
                logger.warning("EXIF parse failed for %s: %s", file.filename, e)
                exposure = NO_EXIF_DATA

        if isinstance(exposure, NoExifData):
            self.stats.files_without_exif += 1
        return exposure
