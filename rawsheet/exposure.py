"""Exposure caption formatting for contact sheet entries."""

import math
from decimal import Decimal
from fractions import Fraction

from rawsheet.models import ExposureSummary, NoExifData


UNKNOWN = "?"
UNKNOWN_FOCAL_LENGTH = "?mm"
NO_EXIF_CAPTION = "No EXIF"


def format_shutter_speed(exposure_time: Fraction | None) -> str:
    """
    Format an exposure time for display.

    Faster than one second shows as a reciprocal fraction ("1/200"), one
    second or slower shows as seconds ("1s", "2.5s").
    """
    if not exposure_time:
        return UNKNOWN
    if exposure_time < 1:
        return f"1/{_round_half_up(1 / exposure_time)}"
    seconds = Decimal(exposure_time.numerator) / Decimal(exposure_time.denominator)
    return f"{_plain(seconds)}s"


def format_aperture(f_number: Decimal | None) -> str:
    if not f_number:
        return UNKNOWN
    return f"f/{_plain(f_number)}"


def format_focal_length(focal_length: Decimal | None) -> str:
    if not focal_length:
        return UNKNOWN_FOCAL_LENGTH
    return f"{_round_half_up(Fraction(focal_length))}mm"


def format_exposure(summary: ExposureSummary | NoExifData) -> str:
    """Format a summary as "shutter - aperture - focal length"."""
    if isinstance(summary, NoExifData):
        return NO_EXIF_CAPTION
    return " - ".join(
        [
            format_shutter_speed(summary.shutter_speed),
            format_aperture(summary.aperture),
            format_focal_length(summary.focal_length),
        ]
    )


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _plain(value: Decimal) -> str:
    # normalize() alone would turn 10 into "1E+1"
    return format(value.normalize(), "f")
