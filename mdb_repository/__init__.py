"""
MDB_REPOSITORY - MongoDB repositories

Generic repository and unit-of-work abstractions over Motor, with
cursor-based pagination and atomic batched writes.
"""

from .config import RepositoryConfig
from .connection import ConnectionManager
from .exceptions import (
    ConfigurationError,
    DocumentNotFoundError,
    InitializationError,
    InvalidFilterError,
    InvalidPageTokenError,
    RepositoryError,
)
from .repositories import (
    DataclassMapper,
    Entity,
    Filter,
    FilterMany,
    FilterPage,
    Mapper,
    MongoRepository,
    Page,
    Repository,
    UnitOfWork,
)

__version__ = "0.1.0"

__all__ = [
    # Repositories
    "Repository",
    "MongoRepository",
    "UnitOfWork",
    "Entity",
    "Mapper",
    "DataclassMapper",
    "Filter",
    "FilterMany",
    "FilterPage",
    "Page",
    # Connection
    "ConnectionManager",
    "RepositoryConfig",
    # Errors
    "RepositoryError",
    "InvalidPageTokenError",
    "InvalidFilterError",
    "DocumentNotFoundError",
    "ConfigurationError",
    "InitializationError",
]
