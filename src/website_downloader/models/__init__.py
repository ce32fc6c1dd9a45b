"""Data models for the website downloader."""

from .job import Job, JobType
from .progress import CrawlState, Progress

__all__ = [
    "Job",
    "JobType",
    "CrawlState",
    "Progress",
]
