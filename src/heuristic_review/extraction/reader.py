"""Read source files from disk, bounded by size and decoded as UTF-8."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..models import ExtractionWarning

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_BYTES = 500_000


class SourceReader:
    """Read raw source text, degrading unreadable files to :class:`ExtractionWarning`."""

    def __init__(self, max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES) -> None:
        self.max_file_size_bytes = max_file_size_bytes

    def read(self, path: str | os.PathLike[str]) -> str | ExtractionWarning:
        file_path = Path(path)
        display = str(path)

        try:
            size = file_path.stat().st_size
        except FileNotFoundError:
            return self._warn(display, "file not found")
        except OSError as exc:
            return self._warn(display, f"cannot stat file: {exc.strerror or exc}")

        if not file_path.is_file():
            return self._warn(display, "not a regular file")
        if size > self.max_file_size_bytes:
            return self._warn(
                display, f"file is {size} bytes, above the {self.max_file_size_bytes} byte limit"
            )

        try:
            return file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            return self._warn(display, f"not valid UTF-8 text ({exc.reason} at byte {exc.start})")
        except OSError as exc:
            return self._warn(display, f"cannot read file: {exc.strerror or exc}")

    @staticmethod
    def _warn(path: str, message: str) -> ExtractionWarning:
        logger.warning("Skipping %s: %s", path, message)
        return ExtractionWarning(path=path, message=message)


__all__ = ["DEFAULT_MAX_FILE_SIZE_BYTES", "SourceReader"]
