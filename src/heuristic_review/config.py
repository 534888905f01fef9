"""Run options and the YAML options file."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .extraction import DEFAULT_MAX_FILE_SIZE_BYTES
from .models import Severity
from .reporting import OUTPUT_FORMATS

DEFAULT_UNIT_TIMEOUT = 10.0


def default_max_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True, slots=True)
class ReviewOptions:
    """Options for one review run.

    ``force_catalogs`` are applied to every unit regardless of detection.
    ``unit_timeout`` bounds extraction plus matching of a single unit.
    """

    force_catalogs: tuple[str, ...] = ()
    output_format: str = "structured"
    fail_on: Severity = Severity.FAIL
    max_workers: int = 0
    unit_timeout: float = DEFAULT_UNIT_TIMEOUT
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES

    def __post_init__(self) -> None:
        if isinstance(self.force_catalogs, str):
            object.__setattr__(self, "force_catalogs", (self.force_catalogs,))
        else:
            object.__setattr__(self, "force_catalogs", tuple(self.force_catalogs))

        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}; got {self.output_format!r}"
            )
        try:
            object.__setattr__(self, "fail_on", Severity.parse(self.fail_on))
        except ValueError as exc:
            raise ConfigError(f"fail_on must be one of info, warn, fail; got {self.fail_on!r}") from exc

        if not self.max_workers:
            object.__setattr__(self, "max_workers", default_max_workers())
        if _invalid_number(self.max_workers, integer=True):
            raise ConfigError(f"max_workers must be a positive integer; got {self.max_workers!r}")
        if _invalid_number(self.unit_timeout):
            raise ConfigError(f"unit_timeout must be a positive number; got {self.unit_timeout!r}")
        if _invalid_number(self.max_file_size_bytes, integer=True):
            raise ConfigError(
                f"max_file_size_bytes must be a positive integer; got {self.max_file_size_bytes!r}"
            )

    def with_overrides(self, **overrides: Any) -> "ReviewOptions":
        """Return a copy with every non-``None`` override applied."""

        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def _invalid_number(value: object, *, integer: bool = False) -> bool:
    if isinstance(value, bool):
        return True
    if integer and not isinstance(value, int):
        return True
    if not isinstance(value, (int, float)):
        return True
    return value <= 0


def options_from_mapping(data: Mapping[str, Any]) -> ReviewOptions:
    known = {field.name for field in fields(ReviewOptions)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown option(s): {', '.join(unknown)}")

    values = dict(data)
    force = values.get("force_catalogs")
    if force is None:
        values.pop("force_catalogs", None)
    elif isinstance(force, str):
        values["force_catalogs"] = (force,)
    elif not isinstance(force, list) or not all(isinstance(item, str) for item in force):
        raise ConfigError("force_catalogs must be a catalog identifier or a list of identifiers")
    return ReviewOptions(**values)


def load_options(path: Path | str) -> ReviewOptions:
    """Load :class:`ReviewOptions` from a YAML file whose keys mirror the dataclass."""

    options_path = Path(path)
    try:
        raw = options_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read options file '{options_path}': {exc}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Options file '{options_path}' is not valid YAML: {exc}") from exc

    if not isinstance(data, Mapping):
        raise ConfigError(f"Options file '{options_path}' must contain a mapping")
    return options_from_mapping(data)


__all__ = ["DEFAULT_UNIT_TIMEOUT", "ReviewOptions", "default_max_workers", "load_options", "options_from_mapping"]
