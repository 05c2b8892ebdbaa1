"""sc_archive: read-only archiver for cursor-paginated collection APIs."""

from .auth import CredentialContext
from .collectors import CollectionCrawler, CrawlState, EventCancellationToken
from .config import (
    ApiConfig,
    AppConfig,
    RateLimitConfig,
    RetryConfig,
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .extract import EntityDecoder
from .models import CollectionKind, PageRequest, PageResponse, Snapshot
from .ratelimit import RateLimiter
from .records import Comment, Like, Playlist, Track, User
from .retry import RetryPolicy, Verdict
from .scheduler import archive_collection, run_archive
from .snapshot import SnapshotAssembler

__all__ = [
    "ApiConfig",
    "AppConfig",
    "CollectionCrawler",
    "CollectionKind",
    "Comment",
    "CrawlState",
    "CredentialContext",
    "EntityDecoder",
    "EventCancellationToken",
    "Like",
    "PageRequest",
    "PageResponse",
    "Playlist",
    "RateLimitConfig",
    "RateLimiter",
    "RetryConfig",
    "RetryPolicy",
    "RuntimeConfig",
    "Snapshot",
    "SnapshotAssembler",
    "Track",
    "User",
    "Verdict",
    "archive_collection",
    "config_to_dict",
    "default_config",
    "init_default_config",
    "load_runtime_config",
    "resolve_config_path",
    "run_archive",
]

__version__ = "0.1.0"
