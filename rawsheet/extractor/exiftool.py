"""Exiftool wrapper for metadata and embedded thumbnail extraction."""

import asyncio
import json
import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from rawsheet.extractor.parser import get_first_value
from rawsheet.models import RawImageFile


logger = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_TAGS = ("ThumbnailImage", "PreviewImage")

STDIN_SOURCE = "-"


class ExiftoolNotFoundError(Exception):
    """Raised when exiftool is not installed."""


class ExiftoolError(Exception):
    """Raised when exiftool could not read a file."""


@dataclass
class ExiftoolResult:
    """Result from exiftool extraction."""

    source_file: str
    metadata: dict
    error: str | None = None


class ExiftoolRunner:
    """Wrapper for exiftool command execution."""

    EXIFTOOL_ARGS = ["-json", "-n"]

    def __init__(self, executable: str = "exiftool") -> None:
        self.executable = executable
        self.version = self._check_exiftool()
        logger.debug("Using %s version %s", self.executable, self.version)

    def _check_exiftool(self) -> str:
        path = shutil.which(self.executable)
        if not path:
            raise ExiftoolNotFoundError(
                "exiftool is required but not found.\n"
                "Please install exiftool: https://exiftool.org/install.html"
            )

        try:
            result = subprocess.run(
                [path, "-ver"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            raise ExiftoolNotFoundError(f"exiftool at {path} is not usable: {e}") from e

        return result.stdout.strip()

    def extract_tags(
        self,
        source: str | bytes,
        tags: Sequence[str],
        binary: bool = False,
    ) -> ExiftoolResult:
        """
        Extract the given tags from one file.

        ``source`` is a path, or the file contents which are piped through
        stdin. With ``binary`` set, binary tag values come back as
        ``base64:``-prefixed strings.
        """
        if isinstance(source, bytes):
            target, stdin_data = STDIN_SOURCE, source
        else:
            target, stdin_data = source, None

        cmd = [self.executable] + self.EXIFTOOL_ARGS
        if binary:
            cmd.append("-b")
        cmd += [f"-{tag}" for tag in tags]
        cmd.append(target)

        try:
            result = subprocess.run(
                cmd,
                input=stdin_data,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            return ExiftoolResult(target, {}, str(e))

        if result.returncode not in (0, 1):
            return ExiftoolResult(target, {}, _decode(result.stderr))

        stdout = _decode(result.stdout)
        try:
            data_list = json.loads(stdout) if stdout.strip() else []
        except json.JSONDecodeError as e:
            return ExiftoolResult(target, {}, f"JSON parse error: {e}")

        if not data_list:
            return ExiftoolResult(target, {}, _decode(result.stderr) or "No output from exiftool")

        metadata = data_list[0]
        if metadata.get("Error"):
            return ExiftoolResult(target, {}, str(metadata["Error"]))
        return ExiftoolResult(metadata.get("SourceFile", target), metadata)


class ExiftoolCapability:
    """Asynchronous metadata capability backed by an ExiftoolRunner."""

    def __init__(
        self,
        runner: ExiftoolRunner,
        thumbnail_tags: Sequence[str] = DEFAULT_THUMBNAIL_TAGS,
    ) -> None:
        self.runner = runner
        self.thumbnail_tags = tuple(thumbnail_tags)

    async def parse(self, file: RawImageFile, fields: Sequence[str]) -> dict | None:
        result = await self._run(file, fields)
        values = {key: result.metadata[key] for key in fields if result.metadata.get(key) is not None}
        return values or None

    async def thumbnail(self, file: RawImageFile) -> str | None:
        result = await self._run(file, self.thumbnail_tags, binary=True)
        return get_first_value(result.metadata, *self.thumbnail_tags)

    async def _run(
        self,
        file: RawImageFile,
        tags: Sequence[str],
        binary: bool = False,
    ) -> ExiftoolResult:
        source: str | bytes = str(file.path) if file.path is not None else await file.read_bytes()
        result = await asyncio.to_thread(self.runner.extract_tags, source, tags, binary)
        if result.error:
            raise ExiftoolError(f"{file.filename}: {result.error}")
        return result


def _decode(output: bytes) -> str:
    return output.decode("utf-8", errors="replace")
