"""Thumbnail and exposure extraction from raw files."""

from rawsheet.extractor.decoder import (
    DecoderLoadFailed,
    DecoderState,
    DecoderUnavailable,
    RawDecoder,
    RawpyCapability,
    get_raw_decoder,
    load_rawpy,
)
from rawsheet.extractor.exiftool import (
    ExiftoolCapability,
    ExiftoolError,
    ExiftoolNotFoundError,
    ExiftoolRunner,
)
from rawsheet.extractor.metadata import (
    EXPOSURE_FIELDS,
    MetadataCapability,
    MetadataReader,
    MetadataUnavailable,
)
from rawsheet.extractor.normalize import NormalizationFailure, normalize_output

__all__ = [
    "DecoderLoadFailed",
    "DecoderState",
    "DecoderUnavailable",
    "RawDecoder",
    "RawpyCapability",
    "get_raw_decoder",
    "load_rawpy",
    "ExiftoolCapability",
    "ExiftoolError",
    "ExiftoolNotFoundError",
    "ExiftoolRunner",
    "EXPOSURE_FIELDS",
    "MetadataCapability",
    "MetadataReader",
    "MetadataUnavailable",
    "NormalizationFailure",
    "normalize_output",
]
