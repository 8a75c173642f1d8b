"""Shared fixtures and capability doubles."""

# pylint: disable=redefined-outer-name

import asyncio
from io import BytesIO
from typing import Any

import pytest
from PIL import Image

from rawsheet.models import RawImageFile


class FakeMetadataCapability:
    """In-memory stand-in for the exiftool capability."""

    def __init__(
        self,
        thumbnail: Any = None,
        fields: dict | None = None,
        thumbnail_error: Exception | None = None,
        parse_error: Exception | None = None,
        thumbnails: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.default_thumbnail = thumbnail
        self.fields = fields
        self.thumbnail_error = thumbnail_error
        self.parse_error = parse_error
        self.thumbnails = thumbnails or {}
        self.delays = delays or {}
        self.thumbnail_calls: list[str] = []
        self.parse_calls: list[tuple[str, list[str]]] = []

    async def parse(self, file: RawImageFile, fields: list[str]) -> dict | None:
        self.parse_calls.append((file.filename, list(fields)))
        if self.parse_error:
            raise self.parse_error
        return self.fields

    async def thumbnail(self, file: RawImageFile) -> Any:
        self.thumbnail_calls.append(file.filename)
        await asyncio.sleep(self.delays.get(file.filename, 0))
        if self.thumbnail_error:
            raise self.thumbnail_error
        return self.thumbnails.get(file.filename, self.default_thumbnail)


class FakeDecodeCapability:
    """Stand-in for the rawpy capability."""

    def __init__(self, output: Any = None, error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.calls: list[tuple[bytes, bool]] = []

    def decode(self, data: bytes, *, extract_thumbnail: bool = True) -> Any:
        self.calls.append((data, extract_thumbnail))
        if self.error:
            raise self.error
        return self.output


class CountingLoader:
    """Async capability loader that records how often it ran."""

    def __init__(self, capability: Any = None, error: Exception | None = None) -> None:
        self.capability = capability
        self.error = error
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.capability


def make_jpeg(color: str = "red", size: tuple[int, int] = (64, 48)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def raw_file() -> RawImageFile:
    return RawImageFile(filename="IMG_0001.CR2", data=b"II*\x00\x10\x00\x00\x00CR\x02\x00raw-bytes")


@pytest.fixture
def metadata_capability_factory() -> type[FakeMetadataCapability]:
    return FakeMetadataCapability


@pytest.fixture
def decode_capability_factory() -> type[FakeDecodeCapability]:
    return FakeDecodeCapability


@pytest.fixture
def loader_factory() -> type[CountingLoader]:
    return CountingLoader


@pytest.fixture
def jpeg_factory():
    return make_jpeg
