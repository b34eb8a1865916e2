"""Status sync configuration models.

See Also:
    [StatusSyncWorker][statusfeed.services.statuses.StatusSyncWorker]: The
        worker that consumes this configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StatusSyncConfig(BaseModel):
    """Realtime status subscription settings."""

    seen_cache_size: int = Field(
        default=10_000,
        ge=100,
        le=1_000_000,
        description="Event ids remembered for realtime de-duplication",
    )
