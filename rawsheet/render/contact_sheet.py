"""Contact sheet rendering with Pillow."""

import logging
import math
from collections.abc import Sequence
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont, ImageOps

from rawsheet.config import SheetConfig
from rawsheet.exposure import format_exposure
from rawsheet.models import ResolutionOutcome, ThumbnailImage


logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "No thumbnail: "
JPEG_SUFFIXES = {".jpg", ".jpeg"}


def placeholder_text(filename: str) -> str:
    return f"{PLACEHOLDER_PREFIX}{filename}"


def describe(outcome: ResolutionOutcome) -> str:
    """One-line text form of an outcome."""
    if not outcome.has_thumbnail:
        return placeholder_text(outcome.filename)
    return f"{outcome.filename} [{outcome.source.value}] {format_exposure(outcome.exposure)}"


class ContactSheetRenderer:
    """Draws resolution outcomes as a grid of captioned tiles."""

    def __init__(self, config: SheetConfig | None = None) -> None:
        self.config = config or SheetConfig()
        self.font = ImageFont.load_default()

    def render(self, outcomes: Sequence[ResolutionOutcome]) -> Image.Image:
        """
        Render outcomes in order onto a new sheet.

        Every call starts from a blank canvas.
        """
        cfg = self.config
        columns = max(1, min(cfg.columns, len(outcomes)))
        rows = max(1, math.ceil(len(outcomes) / columns))
        cell_height = cfg.tile_size + cfg.caption_height

        width = cfg.padding + columns * (cfg.tile_size + cfg.padding)
        height = cfg.padding + rows * (cell_height + cfg.padding)
        sheet = Image.new("RGB", (width, height), cfg.background)
        draw = ImageDraw.Draw(sheet)

        for index, outcome in enumerate(outcomes):
            row, column = divmod(index, columns)
            left = cfg.padding + column * (cfg.tile_size + cfg.padding)
            top = cfg.padding + row * (cell_height + cfg.padding)
            self._draw_tile(sheet, draw, outcome, left, top)

        return sheet

    def save(self, outcomes: Sequence[ResolutionOutcome], path: Path) -> Path:
        sheet = self.render(outcomes)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() in JPEG_SUFFIXES:
            sheet.save(path, format="JPEG", quality=self.config.jpeg_quality, optimize=True)
        else:
            sheet.save(path)
        logger.info("Contact sheet written: %s (%d entries)", path, len(outcomes))
        return path

    def _draw_tile(
        self,
        sheet: Image.Image,
        draw: ImageDraw.ImageDraw,
        outcome: ResolutionOutcome,
        left: int,
        top: int,
    ) -> None:
        tile_size = self.config.tile_size
        preview = None
        if isinstance(outcome.thumbnail, ThumbnailImage):
            preview = self._load_preview(outcome.thumbnail, outcome.filename)

        if preview is None:
            self._draw_placeholder(draw, outcome.filename, left, top)
            return

        offset_x = left + (tile_size - preview.width) // 2
        offset_y = top + (tile_size - preview.height) // 2
        sheet.paste(preview, (offset_x, offset_y))

        caption = self._fit_text(format_exposure(outcome.exposure), tile_size)
        caption_y = top + tile_size + self.config.caption_height / 2
        self._draw_centered(draw, [caption], left + tile_size / 2, caption_y)

    def _load_preview(self, thumbnail: ThumbnailImage, filename: str) -> Image.Image | None:
        try:
            with Image.open(BytesIO(thumbnail.data)) as img:
                preview = ImageOps.exif_transpose(img).convert("RGB")
        except (OSError, Image.DecompressionBombError) as e:
            logger.warning("Cannot decode %s preview for %s: %s", thumbnail.mime_type, filename, e)
            return None

        size = self.config.tile_size
        preview.thumbnail((size, size), Image.Resampling.LANCZOS)
        return preview

    def _draw_placeholder(self, draw: ImageDraw.ImageDraw, filename: str, left: int, top: int) -> None:
        tile_size = self.config.tile_size
        draw.rectangle(
            (left, top, left + tile_size - 1, top + tile_size - 1),
            fill=self.config.placeholder_color,
        )
        lines = self.placeholder_lines(filename)
        self._draw_centered(draw, lines, left + tile_size / 2, top + tile_size / 2)

    def placeholder_lines(self, filename: str) -> list[str]:
        """Placeholder tile text, with the full filename wrapped to the tile width."""
        max_width = max(1, self.config.tile_size - 2 * self.config.padding)
        lines = [PLACEHOLDER_PREFIX.strip()]
        current = ""
        for char in filename:
            if current and self.font.getlength(current + char) > max_width:
                lines.append(current)
                current = ""
            current += char
        if current:
            lines.append(current)
        return lines

    def _fit_text(self, text: str, max_width: float) -> str:
        if self.font.getlength(text) <= max_width:
            return text
        while text and self.font.getlength(text + "...") > max_width:
            text = text[:-1]
        return text + "..."

    def _draw_centered(
        self,
        draw: ImageDraw.ImageDraw,
        lines: list[str],
        center_x: float,
        center_y: float,
    ) -> None:
        _, top, _, bottom = self.font.getbbox("Ag")
        line_height = bottom - top + 2
        y = center_y - line_height * len(lines) / 2
        for line in lines:
            x = center_x - self.font.getlength(line) / 2
            draw.text((x, y), line, fill=self.config.text_color, font=self.font)
            y += line_height
