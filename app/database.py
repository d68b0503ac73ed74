"""
Database connection and store selection.

With store_backend="mongo", Beanie is initialized once at startup on top of
a Motor client and the Mongo stores are used; otherwise records live in
process memory.
"""

import logging
from typing import List, Optional, Tuple, Type

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.config import Settings
from app.models.vault_item import VaultItem, VaultUser
from app.stores.base import DocumentStore, UserStore
from app.stores.memory import InMemoryDocumentStore, InMemoryUserStore
from app.stores.mongo import MongoDocumentStore, MongoUserStore

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo(settings: Settings) -> None:
    """
    Create Motor client and initialize Beanie with document models.
    Called once at application startup.
    """
    global _client
    _client = AsyncIOMotorClient(
        settings.mongodb_url,
        tz_aware=True,  # records compare against timezone-aware utcnow()
        serverSelectionTimeoutMS=int(settings.store_timeout_seconds * 1000),
    )
    database = _client[settings.mongodb_database]

    # Document models that Beanie will manage (collections + indexes)
    document_models: List[Type] = [VaultItem, VaultUser]

    await init_beanie(
        database=database,
        document_models=document_models,
    )
    logger.info("MongoDB connection established; Beanie initialized.")


async def close_mongo_connection() -> None:
    global _client
    if _client is not None:
        logger.info("Closing MongoDB connection.")
        _client.close()
        _client = None


async def open_stores(settings: Settings) -> Tuple[DocumentStore, UserStore]:
    if settings.store_backend == "mongo":
        await connect_to_mongo(settings)
        return MongoDocumentStore(), MongoUserStore()
    logger.info("Using in-memory stores; records are lost on restart.")
    return InMemoryDocumentStore(), InMemoryUserStore()


async def close_stores(settings: Settings) -> None:
    if settings.store_backend == "mongo":
        await close_mongo_connection()
