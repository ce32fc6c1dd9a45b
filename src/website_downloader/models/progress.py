"""Crawl progress snapshot and lifecycle states."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CrawlState(str, Enum):
    """Crawler lifecycle. Transitions are driven by Crawler.start only."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DRAINING = "DRAINING"
    TERMINATED = "TERMINATED"  # terminal


class Progress(BaseModel):
    """
    Point-in-time view of a crawl run.
    Built on demand by the crawler and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    persisted: int = Field(..., ge=0, description="Distinct URLs claimed on disk")
    in_flight: int = Field(..., ge=0, description="Jobs submitted but not finished")
    elapsed_seconds: float = Field(..., ge=0)
    failure: Optional[BaseException] = Field(
        default=None, description="First failure captured by any worker"
    )

    @property
    def failed(self) -> bool:
        return self.failure is not None
