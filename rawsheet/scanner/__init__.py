"""File selection for raw files."""

from rawsheet.scanner.filesystem import collect_raw_files, parse_filename

__all__ = ["collect_raw_files", "parse_filename"]
