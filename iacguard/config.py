"""Project configuration read from ``.iacguard.toml``.

Example::

    [validate]
    rules = ["rules/"]
    data = ["templates/"]
    show_summary = ["fail", "skip"]
    output = "text"
    jobs = 4
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAME = ".iacguard.toml"
OUTPUT_FORMATS = ("text", "json")


class ConfigError(ValueError):
    pass


@dataclass
class ValidateConfig:
    rules: list[Path] = field(default_factory=list)
    data: list[Path] = field(default_factory=list)
    show_summary: list[str] = field(default_factory=lambda: ["fail"])
    output: str = "text"
    verbose: bool = False
    jobs: int = 1
    source: Path | None = None


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _path_list(raw: Any, key: str, base: Path) -> list[Path]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
        raise ConfigError(f"validate.{key} must be a string or a list of strings")
    return [p if p.is_absolute() else base / p for p in (Path(s) for s in raw)]


def parse_config(data: dict[str, Any], base: Path, source: Path | None = None) -> ValidateConfig:
    section = _coerce_dict(data.get("validate"))
    cfg = ValidateConfig(source=source)

    cfg.rules = _path_list(section.get("rules"), "rules", base)
    cfg.data = _path_list(section.get("data"), "data", base)

    summary = section.get("show_summary", cfg.show_summary)
    if isinstance(summary, str):
        summary = [summary]
    if not isinstance(summary, list) or not all(isinstance(s, str) for s in summary):
        raise ConfigError("validate.show_summary must be a string or a list of strings")
    cfg.show_summary = list(summary)

    output = str(section.get("output", cfg.output)).strip().lower()
    if output not in OUTPUT_FORMATS:
        raise ConfigError(f"validate.output must be one of {', '.join(OUTPUT_FORMATS)} (got {output!r})")
    cfg.output = output

    verbose = section.get("verbose", False)
    if not isinstance(verbose, bool):
        raise ConfigError("validate.verbose must be true or false")
    cfg.verbose = verbose

    jobs = section.get("jobs", 1)
    if isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1:
        raise ConfigError("validate.jobs must be a positive integer")
    cfg.jobs = jobs

    return cfg


def load_config(path: Path | None = None, *, cwd: Path | None = None) -> ValidateConfig:
    """Load configuration from `path`, or from ``./.iacguard.toml`` if present.

    Relative paths in the file resolve against the file's directory.
    Missing default file means default settings; a missing explicit file is
    an error.
    """
    if path is None:
        candidate = (cwd or Path.cwd()) / CONFIG_FILENAME
        if not candidate.is_file():
            return ValidateConfig()
        path = candidate
    elif not path.is_file():
        raise ConfigError(f"config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"{path}: {e}") from e
    return parse_config(data, path.parent, source=path)
