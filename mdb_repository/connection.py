"""
Connection management for MDB_REPOSITORY.

Creates the Motor client, verifies it, and hands out collections,
repositories and units of work bound to it.
"""

import logging
import time
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from .config import RepositoryConfig
from .constants import (
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import InitializationError
from .observability import get_logger as get_contextual_logger
from .observability import record_operation
from .repositories.mapper import Mapper
from .repositories.mongo import MongoRepository
from .repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ConnectionManager:
    """
    Manages MongoDB connection lifecycle.

    Usage:
        manager = ConnectionManager("mongodb://localhost:27017", "shop")
        await manager.initialize()

        uow = manager.unit_of_work()
        orders = manager.repository("orders", DataclassMapper(Order), unit_of_work=uow)
        await orders.create(order)
        await uow.commit()

        await manager.shutdown()
    """

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            max_pool_size: Maximum MongoDB connection pool size
            min_pool_size: Minimum MongoDB connection pool size
            server_selection_timeout_ms: Server selection timeout in milliseconds
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.max_pool_size = max_pool_size
        self.min_pool_size = min_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms

        self._mongo_client: AsyncIOMotorClient | None = None
        self._mongo_db: AsyncIOMotorDatabase | None = None
        self._initialized: bool = False

    @classmethod
    def from_config(cls, config: RepositoryConfig) -> "ConnectionManager":
        """Build a manager from a validated :class:`RepositoryConfig`."""
        config.validate()
        return cls(
            mongo_uri=config.mongo_uri,
            db_name=config.db_name,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
            server_selection_timeout_ms=config.server_selection_timeout_ms,
        )

    async def initialize(self) -> None:
        """
        Connect to MongoDB and verify the connection with a ping.

        Raises:
            InitializationError: If the connection cannot be established
        """
        start_time = time.time()

        if self._initialized:
            logger.warning("ConnectionManager already initialized. Skipping re-initialization.")
            return

        contextual_logger.info(
            "Initializing MongoDB connection",
            extra={
                "db_name": self.db_name,
                "max_pool_size": self.max_pool_size,
                "min_pool_size": self.min_pool_size,
            },
        )

        try:
            self._mongo_client = AsyncIOMotorClient(
                self.mongo_uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                appname="MDB_REPOSITORY",
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=DEFAULT_MAX_IDLE_TIME_MS,
                retryWrites=True,
                retryReads=True,
            )

            await self._mongo_client.admin.command("ping")
            self._mongo_db = self._mongo_client[self.db_name]

            self._initialized = True
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=True)
            contextual_logger.info(
                "MongoDB connection initialized successfully",
                extra={"db_name": self.db_name, "duration_ms": round(duration_ms, 2)},
            )
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            self._discard_client()
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=False)
            contextual_logger.critical(
                "MongoDB connection failed",
                extra={"error_type": type(e).__name__, "error": str(e)},
                exc_info=True,
            )
            raise InitializationError(
                f"Failed to connect to MongoDB: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={"error_type": type(e).__name__},
            ) from e
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            self._discard_client()
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=False)
            contextual_logger.critical(
                "ConnectionManager initialization failed",
                extra={"error_type": type(e).__name__, "error": str(e)},
                exc_info=True,
            )
            raise InitializationError(
                f"ConnectionManager initialization failed: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={"error_type": type(e).__name__},
            ) from e

    def _discard_client(self) -> None:
        """Close a client whose initialization failed."""
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._mongo_client = None
        self._mongo_db = None

    async def shutdown(self) -> None:
        """Close the client. Safe to call more than once."""
        if not self._initialized:
            return

        if self._mongo_client:
            self._mongo_client.close()

        self._initialized = False
        self._mongo_client = None
        self._mongo_db = None
        contextual_logger.info("MongoDB connection closed")

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        The Motor client.

        Raises:
            RuntimeError: If the connection is not initialized
        """
        if not self._initialized or self._mongo_client is None:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._mongo_client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        The configured database.

        Raises:
            RuntimeError: If the connection is not initialized
        """
        if not self._initialized or self._mongo_db is None:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._mongo_db

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.database[name]

    def unit_of_work(self) -> UnitOfWork:
        """Create a unit of work bound to this client."""
        return UnitOfWork(self.client)

    def repository(
        self,
        name: str,
        mapper: Mapper[Any],
        unit_of_work: UnitOfWork | None = None,
    ) -> MongoRepository:
        """
        Create a repository over collection ``name``.

        Args:
            name: Collection name
            mapper: Entity mapper for the collection
            unit_of_work: Optional unit of work for batched writes
        """
        repo = MongoRepository(mapper, self.collection(name), unit_of_work=unit_of_work)
        logger.debug(f"Created repository for '{name}' ({repo.write_mode!r})")
        return repo
