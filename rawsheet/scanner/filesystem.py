"""File selection: turning command line paths into an ordered list of raw files."""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass
class ParsedFilename:
    """Parsed components of a filename."""

    full: str
    base: str
    extension: str | None


def parse_filename(filename: str) -> ParsedFilename:
    if not filename:
        return ParsedFilename(full=filename, base=filename, extension=None)

    dot_index = filename.rfind(".")

    if dot_index <= 0 or dot_index == len(filename) - 1:
        return ParsedFilename(full=filename, base=filename.rstrip("."), extension=None)

    extension = filename[dot_index + 1 :].lower()
    base = filename[:dot_index]

    return ParsedFilename(full=filename, base=base, extension=extension)


def has_extension(path: Path, extensions: Iterable[str]) -> bool:
    return parse_filename(path.name).extension in set(extensions)


def collect_raw_files(paths: Iterable[Path], extensions: Iterable[str]) -> list[Path]:
    """
    Expand a selection of files and directories into raw files.

    Files keep the order they were given in; a directory contributes its
    matching files (recursively) in sorted order. Duplicates are dropped and
    files with other extensions are skipped.
    """
    extensions = {ext.lower() for ext in extensions}
    selected: list[Path] = []
    seen: set[Path] = set()

    for path in paths:
        candidates = _walk_sorted(path) if path.is_dir() else [path]
        for candidate in candidates:
            if not has_extension(candidate, extensions):
                logger.debug("Skipping unsupported file: %s", candidate)
                continue
            key = candidate.resolve()
            if key in seen:
                continue
            seen.add(key)
            selected.append(candidate)

    return selected


def _walk_sorted(directory: Path) -> list[Path]:
    files: list[Path] = []
    subdirs: list[Path] = []

    try:
        with os.scandir(directory) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    files.append(Path(entry.path))
    except PermissionError:
        logger.warning("Permission denied scanning directory: %s", directory)
    except OSError as e:
        logger.error("Error scanning directory %s: %s", directory, e)

    for subdir in subdirs:
        files.extend(_walk_sorted(subdir))
    return files
