"""MongoDB connection handling and the store handed to services.

For a managed cluster (Atlas etc.) set MONGO_URI to the full connection string
and MONGO_DB to the database name. Tests bypass the real client entirely by
overriding the ``get_store`` dependency with a store built on mongomock.
"""
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from app.core.logging import get_logger
from app.core.config import settings
from app.infrastructure.repositories import (
    AccountRepository,
    ClassRepository,
    CredentialRepository,
    InstructorRepository,
    ManagerRepository,
    OwnedPassRepository,
    PassRepository,
)

logger = get_logger(__name__)

# MongoDB client (lazy initialization, pooled by pymongo)
_mongo_client: Optional[MongoClient] = None


def get_mongo_client(uri: Optional[str] = None) -> MongoClient:
    """Get or create the shared MongoClient.

    Args:
        uri: Connection string (default from MONGO_URI env)

    Returns:
        MongoClient instance. Connection is established lazily by pymongo.
    """
    global _mongo_client

    if _mongo_client is None:
        uri = uri or settings.mongo_uri
        logger.info(f"Initializing MongoDB client for database '{settings.mongo_db}'")
        _mongo_client = MongoClient(
            uri,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            tz_aware=False,
        )

    return _mongo_client


def close_mongo_client() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
        logger.info("MongoDB client closed")


class StudioStore:
    """One repository per collection, built around an explicit Database handle.

    Example:
        >>> store = StudioStore(get_mongo_client()["yoga_studio"])
        >>> store.accounts.get("U00001")
    """

    def __init__(self, database: Database):
        self.database = database
        self.accounts = AccountRepository(database["accounts"])
        self.credentials = CredentialRepository(database["credentials"])
        self.instructors = InstructorRepository(database["instructors"])
        self.managers = ManagerRepository(database["managers"])
        self.passes = PassRepository(database["passes"])
        self.owned_passes = OwnedPassRepository(database["owned_passes"])
        self.classes = ClassRepository(database["classes"])

    def ensure_indexes(self) -> None:
        """Create the unique indexes that back the id and email invariants."""
        db = self.database
        db["accounts"].create_index("accountId", unique=True)
        db["accounts"].create_index("email", unique=True)
        db["credentials"].create_index("accountId", unique=True)
        db["instructors"].create_index("instructorId", unique=True)
        db["instructors"].create_index("accountId", unique=True)
        db["managers"].create_index("managerId", unique=True)
        db["managers"].create_index("accountId", unique=True)
        db["passes"].create_index("passId", unique=True)
        db["owned_passes"].create_index("ownedPassId", unique=True)
        db["owned_passes"].create_index([("accountId", ASCENDING), ("isActive", ASCENDING)])
        db["classes"].create_index("classId", unique=True)
        logger.info("MongoDB indexes ensured")

    def ping(self) -> bool:
        self.database.client.admin.command("ping")
        return True


def get_store() -> StudioStore:
    """FastAPI dependency returning a store on the configured database."""
    return StudioStore(get_mongo_client()[settings.mongo_db])
