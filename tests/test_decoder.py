"""Tests for RawDecoder and the rawpy capability."""

import asyncio
import base64
from collections import namedtuple
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from rawsheet.extractor import decoder as decoder_module
from rawsheet.extractor.decoder import (
    DecoderLoadFailed,
    DecoderState,
    DecoderUnavailable,
    RawDecoder,
    RawpyCapability,
    get_raw_decoder,
    load_rawpy,
)
from rawsheet.models import ABSENT, ThumbnailImage


Thumbnail = namedtuple("Thumbnail", ["format", "data"])


class _NoThumbnail(Exception):
    pass


class _UnsupportedThumbnail(Exception):
    pass


class _FakeRaw:
    def __init__(self, thumb=None, error=None):
        self.thumb = thumb
        self.error = error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def extract_thumb(self):
        if self.error:
            raise self.error
        return self.thumb


def _fake_rawpy(raw: _FakeRaw) -> SimpleNamespace:
    return SimpleNamespace(
        imread=lambda source: raw,
        LibRawNoThumbnailError=_NoThumbnail,
        LibRawUnsupportedThumbnailError=_UnsupportedThumbnail,
        ThumbFormat=SimpleNamespace(JPEG="jpeg", BITMAP="bitmap"),
    )


class TestLazyInitialization:
    """Tests for the decoder state machine."""

    @pytest.mark.asyncio
    async def test_not_loaded_until_first_use(self, loader_factory, decode_capability_factory) -> None:
        loader = loader_factory(decode_capability_factory())
        decoder = RawDecoder(loader)
        assert decoder.state is DecoderState.UNINITIALIZED
        assert loader.calls == 0

    @pytest.mark.asyncio
    async def test_loads_once_and_reuses(
        self, loader_factory, decode_capability_factory, jpeg_bytes
    ) -> None:
        capability = decode_capability_factory(output=jpeg_bytes)
        loader = loader_factory(capability)
        decoder = RawDecoder(loader)

        await decoder.extract_thumbnail(b"raw-1")
        await decoder.extract_thumbnail(b"raw-2")

        assert decoder.state is DecoderState.READY
        assert loader.calls == 1
        assert capability.calls == [(b"raw-1", True), (b"raw-2", True)]

    @pytest.mark.asyncio
    async def test_concurrent_first_use_shares_one_load(
        self, loader_factory, decode_capability_factory
    ) -> None:
        capability = decode_capability_factory()
        loader = loader_factory(capability)
        decoder = RawDecoder(loader)

        first, second = await asyncio.gather(decoder.ensure_ready(), decoder.ensure_ready())

        assert first is capability
        assert second is capability
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_load_failure_is_not_retried(self, loader_factory) -> None:
        loader = loader_factory(error=RuntimeError("libraw missing"))
        decoder = RawDecoder(loader)

        with pytest.raises(DecoderLoadFailed):
            await decoder.extract_thumbnail(b"raw")
        assert decoder.state is DecoderState.FAILED

        with pytest.raises(DecoderUnavailable):
            await decoder.extract_thumbnail(b"raw")
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_reset_failed_allows_retry(self, loader_factory, decode_capability_factory) -> None:
        loader = loader_factory(error=RuntimeError("libraw missing"))
        decoder = RawDecoder(loader)
        with pytest.raises(DecoderLoadFailed):
            await decoder.ensure_ready()

        loader.error = None
        loader.capability = decode_capability_factory()
        decoder.reset_failed()
        assert decoder.state is DecoderState.UNINITIALIZED

        assert await decoder.ensure_ready() is loader.capability
        assert decoder.state is DecoderState.READY
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_reset_does_not_touch_ready_decoder(
        self, loader_factory, decode_capability_factory
    ) -> None:
        loader = loader_factory(decode_capability_factory())
        decoder = RawDecoder(loader)
        await decoder.ensure_ready()
        decoder.reset_failed()
        assert decoder.state is DecoderState.READY

    def test_shared_decoder(self) -> None:
        with patch.object(decoder_module, "_shared_decoder", None):
            assert get_raw_decoder() is get_raw_decoder()


class TestExtractThumbnail:
    """Tests for RawDecoder.extract_thumbnail output shapes."""

    async def _extract(self, output, loader_factory, decode_capability_factory):
        decoder = RawDecoder(loader_factory(decode_capability_factory(output=output)))
        return await decoder.extract_thumbnail(b"raw")

    @pytest.mark.asyncio
    async def test_buffer(self, jpeg_bytes, loader_factory, decode_capability_factory) -> None:
        result = await self._extract(jpeg_bytes, loader_factory, decode_capability_factory)
        assert result == ThumbnailImage(jpeg_bytes, "image/jpeg")

    @pytest.mark.asyncio
    async def test_nested_buffer(self, jpeg_bytes, loader_factory, decode_capability_factory) -> None:
        output = {"thumb": {"data": jpeg_bytes}}
        result = await self._extract(output, loader_factory, decode_capability_factory)
        assert result == ThumbnailImage(jpeg_bytes, "image/jpeg")

    @pytest.mark.asyncio
    async def test_data_url(self, jpeg_bytes, loader_factory, decode_capability_factory) -> None:
        output = "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode("ascii")
        result = await self._extract(output, loader_factory, decode_capability_factory)
        assert result == ThumbnailImage(jpeg_bytes, "image/jpeg")

    @pytest.mark.asyncio
    async def test_no_thumbnail(self, loader_factory, decode_capability_factory) -> None:
        assert await self._extract(None, loader_factory, decode_capability_factory) is ABSENT

    @pytest.mark.asyncio
    async def test_unknown_shape(self, loader_factory, decode_capability_factory) -> None:
        assert await self._extract([1, 2, 3], loader_factory, decode_capability_factory) is ABSENT
        assert await self._extract("PPM raw text", loader_factory, decode_capability_factory) is ABSENT

    @pytest.mark.asyncio
    async def test_decode_error_propagates(self, loader_factory, decode_capability_factory) -> None:
        capability = decode_capability_factory(error=ValueError("not a raw file"))
        decoder = RawDecoder(loader_factory(capability))
        with pytest.raises(ValueError):
            await decoder.extract_thumbnail(b"raw")

    @pytest.mark.asyncio
    async def test_cold_decoders_agree(self, jpeg_bytes, loader_factory, decode_capability_factory) -> None:
        output = Thumbnail("jpeg", jpeg_bytes)
        first = await self._extract(output, loader_factory, decode_capability_factory)
        second = await self._extract(output, loader_factory, decode_capability_factory)
        assert first == second == ThumbnailImage(jpeg_bytes, "image/jpeg")


class TestRawpyCapability:
    """Tests for RawpyCapability with a stand-in rawpy module."""

    def test_jpeg_thumbnail_is_returned_structured(self, jpeg_bytes) -> None:
        thumb = Thumbnail("jpeg", jpeg_bytes)
        raw = _FakeRaw(thumb=thumb)
        capability = RawpyCapability(_fake_rawpy(raw))

        assert capability.decode(b"raw") is thumb
        assert raw.closed

    def test_missing_thumbnail(self) -> None:
        capability = RawpyCapability(_fake_rawpy(_FakeRaw(error=_NoThumbnail())))
        assert capability.decode(b"raw") is None

    def test_unsupported_thumbnail(self) -> None:
        capability = RawpyCapability(_fake_rawpy(_FakeRaw(error=_UnsupportedThumbnail())))
        assert capability.decode(b"raw") is None

    def test_bitmap_is_encoded_as_jpeg(self) -> None:
        np = pytest.importorskip("numpy")
        pixels = np.zeros((8, 12, 3), dtype=np.uint8)
        capability = RawpyCapability(_fake_rawpy(_FakeRaw(thumb=Thumbnail("bitmap", pixels))))

        output = capability.decode(b"raw")

        assert isinstance(output, bytes)
        assert output[:2] == b"\xff\xd8"

    def test_only_thumbnails_supported(self) -> None:
        capability = RawpyCapability(_fake_rawpy(_FakeRaw()))
        with pytest.raises(ValueError):
            capability.decode(b"raw", extract_thumbnail=False)


class TestLoadRawpy:
    """Tests for load_rawpy."""

    @pytest.mark.asyncio
    async def test_import_failure(self) -> None:
        with patch("rawsheet.extractor.decoder.importlib") as mock_importlib:
            mock_importlib.import_module.side_effect = ImportError("No module named 'rawpy'")
            with pytest.raises(DecoderLoadFailed, match="rawpy"):
                await load_rawpy()

    @pytest.mark.asyncio
    async def test_wraps_module(self) -> None:
        module = SimpleNamespace(__version__="0.21.0")
        with patch("rawsheet.extractor.decoder.importlib") as mock_importlib:
            mock_importlib.import_module.return_value = module
            capability = await load_rawpy(jpeg_quality=75)
        mock_importlib.import_module.assert_called_once_with("rawpy")
        assert capability.rawpy is module
        assert capability.jpeg_quality == 75
