"""Configuration loader for the website downloader."""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator


DEFAULT_SOURCE_URL = "https://books.toscrape.com/index.html"
DEFAULT_USER_AGENT = "website-downloader/0.1 (+https://github.com/website-downloader)"


def default_threads() -> int:
    """Twice the number of available cores - best guess for I/O bound work."""
    return (os.cpu_count() or 1) * 2


class WriterMode(str, Enum):
    """How resource bytes are transferred to disk."""

    BLOCKING = "blocking"
    NON_BLOCKING = "non_blocking"


class HTTPConfig(BaseModel):
    """HTTP client settings shared by reader and writer."""

    timeout: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)


class Config(BaseModel):
    """Full downloader configuration."""

    source_url: str = Field(default=DEFAULT_SOURCE_URL)
    output_directory: str = Field(default="data")
    threads: int = Field(default_factory=default_threads, ge=1)
    writer_mode: WriterMode = Field(default=WriterMode.BLOCKING)
    poll_interval: float = Field(default=1.0, gt=0)
    fail_fast: bool = Field(default=False)
    max_jobs: Optional[int] = Field(default=None, ge=1)
    http: HTTPConfig = Field(default_factory=HTTPConfig)

    @field_validator("source_url")
    @classmethod
    def _check_source_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"source_url must be an absolute http(s) URL, got {value!r}")
        return value

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load config from YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """Load config from JSON file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load config from dictionary."""
        return cls(**data)


def load_config(path: str | Path) -> Config:
    """Load configuration from file (YAML or JSON)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix in (".yaml", ".yml"):
        return Config.from_yaml(path)
    return Config.from_json(path)
