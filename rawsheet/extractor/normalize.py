"""Normalization of capability outputs into canonical thumbnails.

Both capabilities answer in several shapes: a plain byte buffer, a structured
result holding a nested buffer (rawpy's ``Thumbnail``), a ``data:`` URL, an
exiftool ``base64:`` value, or a URL pointing at a transient resource. Each
output is first classified into one variant and then mapped to exactly one
``ThumbnailImage`` or ``ABSENT``.
"""

import asyncio
import base64
import binascii
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote_to_bytes, urlparse
from urllib.request import url2pathname

from rawsheet.models import ABSENT, DEFAULT_MIME_TYPE, ThumbnailImage, ThumbnailResult


logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"
EXIFTOOL_BINARY_PREFIX = "base64:"
OBJECT_URL_SCHEMES = {"file", "blob", "http", "https"}

_BUFFER_TYPES = (bytes, bytearray, memoryview)


class NormalizationFailure(Exception):
    """Raised when a capability output cannot be turned into image bytes."""


@dataclass(frozen=True)
class Bytes:
    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class NestedBytes:
    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class DataUrl:
    url: str


@dataclass(frozen=True)
class ObjectUrl:
    url: str


@dataclass(frozen=True)
class Unrecognized:
    value: Any


RawCapabilityOutput = Bytes | NestedBytes | DataUrl | ObjectUrl | Unrecognized


def classify(output: Any) -> RawCapabilityOutput:
    """Tag a raw capability output with its variant."""
    if isinstance(output, _BUFFER_TYPES):
        return Bytes(bytes(output))
    if isinstance(output, str):
        return _classify_string(output)

    nested = _nested_buffer(output)
    if nested is not None:
        return NestedBytes(bytes(nested), _nested_mime_type(output))
    return Unrecognized(output)


async def normalize(
    variant: RawCapabilityOutput,
    default_mime: str = DEFAULT_MIME_TYPE,
) -> ThumbnailResult:
    """Map a classified output to a canonical image, or ABSENT."""
    try:
        if isinstance(variant, (Bytes, NestedBytes)):
            return _image(variant.data, variant.mime_type or default_mime)
        if isinstance(variant, DataUrl):
            mime_type, data = decode_data_url(variant.url)
            return _image(data, mime_type or default_mime)
        if isinstance(variant, ObjectUrl):
            data = await dereference_object_url(variant.url)
            return _image(data, default_mime)
    except NormalizationFailure as e:
        logger.debug("Discarding capability output: %s", e)
        return ABSENT

    if variant.value is not None:
        logger.debug("Unrecognized capability output of type %s", type(variant.value).__name__)
    return ABSENT


async def normalize_output(output: Any, default_mime: str = DEFAULT_MIME_TYPE) -> ThumbnailResult:
    return await normalize(classify(output), default_mime)


def decode_data_url(url: str) -> tuple[str | None, bytes]:
    """
    Decode a ``data:[<mime>][;base64],<payload>`` URL.

    Returns (mime_type or None, payload bytes).
    """
    if not url.startswith(DATA_URL_PREFIX) or "," not in url:
        raise NormalizationFailure("Malformed data URL")

    header, payload = url[len(DATA_URL_PREFIX) :].split(",", 1)
    params = [p.strip() for p in header.split(";")]
    is_base64 = "base64" in (p.lower() for p in params[1:])
    mime_type = params[0].lower() or None

    if is_base64:
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise NormalizationFailure(f"Invalid base64 payload: {e}") from e
    else:
        data = unquote_to_bytes(payload)
    return mime_type, data


async def dereference_object_url(url: str) -> bytes:
    """Read the resource behind an object URL; only local file URLs are readable."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise NormalizationFailure(f"Cannot dereference {parsed.scheme}: URL")

    path = Path(url2pathname(parsed.path))
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise NormalizationFailure(f"Could not read {path}: {e}") from e


def _classify_string(output: str) -> RawCapabilityOutput:
    if output.startswith(DATA_URL_PREFIX):
        return DataUrl(output)
    if output.startswith(EXIFTOOL_BINARY_PREFIX):
        return DataUrl(f"{DATA_URL_PREFIX};base64,{output[len(EXIFTOOL_BINARY_PREFIX) :]}")
    if urlparse(output).scheme in OBJECT_URL_SCHEMES:
        return ObjectUrl(output)
    return Unrecognized(output)


def _nested_buffer(output: Any) -> Any:
    for container in (output, _lookup(output, "thumb")):
        data = _lookup(container, "data")
        if isinstance(data, _BUFFER_TYPES):
            return data
    return None


def _nested_mime_type(output: Any) -> str | None:
    mime_type = _lookup(output, "mime_type")
    return mime_type if isinstance(mime_type, str) else None


def _lookup(container: Any, name: str) -> Any:
    if container is None:
        return None
    if isinstance(container, Mapping):
        return container.get(name)
    return getattr(container, name, None)


def _image(data: bytes, mime_type: str) -> ThumbnailResult:
    if not data:
        raise NormalizationFailure("Empty image payload")
    return ThumbnailImage(data=bytes(data), mime_type=mime_type)
