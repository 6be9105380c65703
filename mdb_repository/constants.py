"""
Constants for MDB_REPOSITORY.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# PAGINATION CONSTANTS
# ============================================================================

DEFAULT_PAGE_SIZE: Final[int] = 50
"""Number of documents returned by find/paginate when no take is given."""

MAX_PAGE_SIZE: Final[int] = 100
"""Upper bound for any requested take."""

CURSOR_FORMAT_VERSION: Final[int] = 1
"""Version tag written into every page token. Tokens with another version are rejected."""

CURSOR_DIRECTION_NEXT: Final[str] = "next"
CURSOR_DIRECTION_PREV: Final[str] = "prev"

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

DOCUMENT_ID_FIELD: Final[str] = "_id"
"""Field holding the document identifier."""

# Connection pool defaults
DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

DEFAULT_MAX_METRICS: Final[int] = 10000
"""Maximum number of metric keys kept before the oldest is evicted."""
