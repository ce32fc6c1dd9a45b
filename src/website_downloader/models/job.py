"""Crawl job models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobType(str, Enum):
    """Kinds of work the crawler performs for a URL."""

    PAGE = "page"  # fetch, parse, extract, enqueue children, persist
    FILE = "file"  # persist raw bytes only


class Job(BaseModel):
    """A unit of crawl work. Created on submission, consumed once by a worker."""

    model_config = ConfigDict(frozen=True)

    kind: JobType
    url: str = Field(..., description="Absolute URL of the page or resource")
