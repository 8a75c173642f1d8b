"""Configuration module for rawsheet."""

from dataclasses import dataclass, field
from pathlib import Path

from rawsheet.extractor.exiftool import DEFAULT_THUMBNAIL_TAGS


@dataclass
class ExtractorConfig:
    exiftool_path: str = "exiftool"
    thumbnail_tags: tuple[str, ...] = DEFAULT_THUMBNAIL_TAGS
    # Quality used when LibRaw hands back an uncompressed bitmap preview
    jpeg_quality: int = 90


@dataclass
class SheetConfig:
    columns: int = 4
    tile_size: int = 240
    padding: int = 10
    caption_height: int = 22
    background: tuple[int, int, int] = (34, 34, 34)
    text_color: tuple[int, int, int] = (238, 238, 238)
    placeholder_color: tuple[int, int, int] = (60, 60, 60)
    jpeg_quality: int = 90


@dataclass
class Config:
    output_path: Path = Path("contact_sheet.jpg")
    extensions: frozenset[str] = frozenset({"cr2"})
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    sheet: SheetConfig = field(default_factory=SheetConfig)
