from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from jinja2 import TemplateSyntaxError
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .formatter import Formatter, JinjaFormatter
from .scanners import DelimiterScanner, PatternScanner, Scanner

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = r"\s+"

ScanMode = Literal["pattern", "delimiter", "whitespace"]

_FLAG_LETTERS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "a": re.ASCII,
}


class ScanConfig(BaseModel):
    """Configure how each input line is split into fields.

    - pattern: regex whose groups become fields (by index and by name).
    - delimiter: regex that separates fields.
    - flags: regex flags as letters: i, m, s, x, a.

    At most one of pattern and delimiter may be given; with neither, lines
    are split on runs of whitespace.
    """
    pattern: str | None = Field(default=None, description="Regex with (optionally named) capture groups")
    delimiter: str | None = Field(default=None, description="Regex matching the separator between fields")
    flags: str | None = Field(default=None, description="Regex flags as letters: i,m,s,x,a")

    @field_validator("flags")
    @classmethod
    def _validate_flags(cls, v: str | None) -> str | None:
        _parse_flags(v)
        return v

    @model_validator(mode="after")
    def _validate_regexes(self) -> "ScanConfig":
        if self.pattern is not None and self.delimiter is not None:
            raise ValueError("give either 'pattern' or 'delimiter', not both")
        flags = _parse_flags(self.flags)
        for name in ("pattern", "delimiter"):
            source = getattr(self, name)
            if source is None:
                continue
            try:
                re.compile(source, flags)
            except re.error as e:
                raise ValueError(f"invalid {name} regex {source!r}: {e}")
        return self

    @property
    def mode(self) -> ScanMode:
        if self.pattern is not None:
            return "pattern"
        if self.delimiter is not None:
            return "delimiter"
        return "whitespace"


class OutputConfig(BaseModel):
    """Configure how extracted fields are rendered."""
    format: str | None = Field(default=None, description="Output template, e.g. '{1}: {name}'")
    engine: Literal["placeholder", "jinja"] = Field(
        default="placeholder",
        description="Render {key} placeholders ('placeholder') or a Jinja2 template ('jinja')",
    )


class InputConfig(BaseModel):
    """Configure how input bytes are decoded."""
    encoding: str = Field(default="utf-8")

    @field_validator("encoding")
    @classmethod
    def _validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"unknown encoding {v!r}")
        return v


class Config(BaseModel):
    """Top-level configuration for a fieldfmt run."""
    description: str | None = Field(default=None, description="Optional description of this configuration")
    scan: ScanConfig = Field(default_factory=ScanConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    input: InputConfig = Field(default_factory=InputConfig)

    @model_validator(mode="after")
    def _require_format(self) -> "Config":
        if self.output.format is None:
            raise ValueError("an output format is required")
        return self

    def build_scanner(self) -> Scanner:
        flags = _parse_flags(self.scan.flags)
        mode = self.scan.mode
        logger.debug("Using %s scanner", mode)
        if mode == "pattern":
            return PatternScanner(pattern=re.compile(self.scan.pattern, flags))
        if mode == "delimiter":
            return DelimiterScanner(delimiter=re.compile(self.scan.delimiter, flags))
        return DelimiterScanner(delimiter=re.compile(DEFAULT_DELIMITER, flags))

    def build_formatter(self) -> Formatter:
        if self.output.engine == "jinja":
            try:
                return JinjaFormatter(template=self.output.format)
            except TemplateSyntaxError as e:
                raise ConfigError(f"invalid Jinja template: {e}")
        return Formatter(template=self.output.format)


def _parse_flags(flag_letters: str | None) -> int:
    """Translate simple flag letters into Python regex flags."""
    flag_value = 0
    if not flag_letters:
        return flag_value
    for ch in flag_letters:
        flag = _FLAG_LETTERS.get(ch.lower())
        if flag is None:
            raise ValueError(f"unknown regex flag {ch!r} (expected some of: {''.join(_FLAG_LETTERS)})")
        flag_value |= flag
    return flag_value


def build_config(data: dict[str, Any]) -> Config:
    """Validate raw settings into a Config, raising ConfigError on failure."""
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        # Re-raise with a cleaner message for CLI users
        raise ConfigError(_format_validation_error(e))


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> Config:
    """Load YAML settings from 'path', apply overrides and validate.

    Overrides are nested like the YAML file ({"scan": {"pattern": ...}});
    None values in overrides are ignored so unset CLI options keep the
    file's values.
    """
    data: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}")
        if not isinstance(loaded, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        data = loaded
        logger.debug("Loaded config from %s", path)
    if overrides:
        data = _merge(data, overrides)
    return build_config(data)


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif isinstance(value, dict):
            merged[key] = _merge({}, value)
        else:
            merged[key] = value
    return merged


def _format_validation_error(e: ValidationError) -> str:
    messages = []
    for err in e.errors():
        location = ".".join(str(part) for part in err["loc"])
        msg = err["msg"]
        messages.append(f"{location}: {msg}" if location else msg)
    return "; ".join(messages)
