"""Archive orchestration."""

from .archive import (
    ArchiveOutcome,
    ArchiveRunResult,
    archive_collection,
    build_crawler,
    build_limiter,
    build_retry_policy,
    new_run_id,
    run_archive,
)

__all__ = [
    "ArchiveOutcome",
    "ArchiveRunResult",
    "archive_collection",
    "build_crawler",
    "build_limiter",
    "build_retry_policy",
    "new_run_id",
    "run_archive",
]
