"""
dashboard.py — Pydantic models for the dashboard bootstrap endpoint.
"""

from pydantic import BaseModel, Field


class DashboardConfig(BaseModel):
    """Everything the dashboard page needs before it opens the stream."""

    stream_endpoint: str            # ws://host:port/path
    logo_template: str              # "{channel}" placeholder
    logo_missing: str
    programme_uri: str              # "{id}" placeholder
    programme_picture_uri: str      # "{id}" placeholder
    initial_services: list[str] = Field(default_factory=list)


class IngestAck(BaseModel):
    """Short acknowledgement for bulk ingestion."""

    ingested: list[str]
    subscribers: int
