"""RawDecoder: embedded preview extraction through LibRaw (rawpy).

The decoding capability is loaded lazily, once per process. Loading goes
through an explicit state machine::

    UNINITIALIZED -> LOADING -> READY
                             -> FAILED -> (reset_failed) -> UNINITIALIZED

Callers that arrive while the capability is loading await the same load task.
"""

import asyncio
import importlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from io import BytesIO
from types import ModuleType
from typing import Any, Protocol

from PIL import Image

from rawsheet.extractor.normalize import normalize_output
from rawsheet.models import DEFAULT_MIME_TYPE, ThumbnailResult


logger = logging.getLogger(__name__)


class DecoderUnavailable(Exception):
    """Raised when the raw decoding capability is not available."""


class DecoderLoadFailed(DecoderUnavailable):
    """Raised when loading the raw decoding capability fails."""


class DecoderState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class DecodeCapability(Protocol):
    """Protocol for raw decoding backends."""

    def decode(self, data: bytes, *, extract_thumbnail: bool = True) -> Any:
        """Return the embedded thumbnail in any supported shape, or None."""


CapabilityLoader = Callable[[], Awaitable[DecodeCapability]]


class RawpyCapability:
    """Extracts embedded previews with rawpy; never demosaics."""

    def __init__(self, rawpy: ModuleType, jpeg_quality: int = 90) -> None:
        self.rawpy = rawpy
        self.jpeg_quality = jpeg_quality

    def decode(self, data: bytes, *, extract_thumbnail: bool = True) -> Any:
        if not extract_thumbnail:
            raise ValueError("Only embedded thumbnail extraction is supported")

        with self.rawpy.imread(BytesIO(data)) as raw:
            try:
                thumb = raw.extract_thumb()
            except (
                self.rawpy.LibRawNoThumbnailError,
                self.rawpy.LibRawUnsupportedThumbnailError,
            ) as e:
                logger.debug("No usable embedded thumbnail: %s", e)
                return None

        if thumb.format == self.rawpy.ThumbFormat.BITMAP:
            return self._encode_bitmap(thumb.data)
        return thumb

    def _encode_bitmap(self, pixels: Any) -> bytes:
        buffer = BytesIO()
        Image.fromarray(pixels).convert("RGB").save(buffer, format="JPEG", quality=self.jpeg_quality)
        return buffer.getvalue()


async def load_rawpy(jpeg_quality: int = 90) -> RawpyCapability:
    """Import rawpy (and with it LibRaw) off the event loop."""
    try:
        module = await asyncio.to_thread(importlib.import_module, "rawpy")
    except ImportError as e:
        raise DecoderLoadFailed(f"Failed to load rawpy: {e}") from e
    logger.info("Loaded rawpy %s", getattr(module, "__version__", "unknown"))
    return RawpyCapability(module, jpeg_quality=jpeg_quality)


class RawDecoder:
    """Lazily initialized raw decoding service."""

    def __init__(self, loader: CapabilityLoader = load_rawpy) -> None:
        self._loader = loader
        self._state = DecoderState.UNINITIALIZED
        self._capability: DecodeCapability | None = None
        self._load_task: asyncio.Task | None = None
        self._load_error: BaseException | None = None

    @property
    def state(self) -> DecoderState:
        return self._state

    async def ensure_ready(self) -> DecodeCapability:
        """Load the capability on first use and return it."""
        if self._state is DecoderState.READY and self._capability is not None:
            return self._capability
        if self._state is DecoderState.FAILED:
            raise DecoderUnavailable("Raw decoder failed to load") from self._load_error

        if self._load_task is None:
            self._state = DecoderState.LOADING
            self._load_task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._load_task)

    def reset_failed(self) -> None:
        """Allow a failed load to be retried (at the start of a new pass)."""
        if self._state is DecoderState.FAILED:
            self._state = DecoderState.UNINITIALIZED
            self._load_error = None

    async def extract_thumbnail(self, data: bytes) -> ThumbnailResult:
        """Decode raw bytes and return their embedded preview, or ABSENT."""
        capability = await self.ensure_ready()
        output = await asyncio.to_thread(capability.decode, data, extract_thumbnail=True)
        return await normalize_output(output, default_mime=DEFAULT_MIME_TYPE)

    async def _load(self) -> DecodeCapability:
        try:
            capability = await self._loader()
        except Exception as e:
            self._state = DecoderState.FAILED
            self._load_error = e
            logger.error("Failed to load raw decoder: %s", e)
            raise DecoderLoadFailed(f"Failed to load raw decoder: {e}") from e
        finally:
            self._load_task = None

        self._capability = capability
        self._state = DecoderState.READY
        return capability


_shared_decoder: RawDecoder | None = None


def get_raw_decoder(loader: CapabilityLoader | None = None) -> RawDecoder:
    """
    Return the process-wide RawDecoder, creating it on first call.

    ``loader`` only takes effect when the shared decoder is created.
    """
    global _shared_decoder
    if _shared_decoder is None:
        _shared_decoder = RawDecoder(loader or load_rawpy)
    return _shared_decoder
