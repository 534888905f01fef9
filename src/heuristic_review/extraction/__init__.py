"""Source unit extraction: raw text to structural signals."""

from .extractor import SourceUnitExtractor, domain_hints
from .reader import DEFAULT_MAX_FILE_SIZE_BYTES, SourceReader

__all__ = [
    "DEFAULT_MAX_FILE_SIZE_BYTES",
    "SourceReader",
    "SourceUnitExtractor",
    "domain_hints",
]
