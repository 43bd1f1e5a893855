"""MongoDB connection and utilities."""

import logging
from contextlib import contextmanager

from pymongo import ASCENDING, DESCENDING, TEXT, MongoClient
from pymongo.database import Database

from src.config import MONGO_CONFIG

logger = logging.getLogger(__name__)

ADMIN_PRODUCTS = "admin_products"
ADOPTED_PRODUCTS = "adopted_products"
USERS = "users"


class MongoDBClient:
    def __init__(self):
        self.client = MongoClient(MONGO_CONFIG["uri"])
        self.db: Database = self.client[MONGO_CONFIG["database"]]
        self.transactions_enabled = MONGO_CONFIG["transactions"]

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        return self.db[name]

    @contextmanager
    def transaction(self):
        """
        Yield a session bound to a transaction, or None when transactions are disabled.

        pymongo accepts session=None everywhere, so callers pass the yielded value straight through.
        """
        if not self.transactions_enabled:
            yield None
            return
        with self.client.start_session() as session:
            with session.start_transaction():
                yield session

    def create_indexes(self):
        """Create necessary indexes."""
        products = self.db.get_collection(ADMIN_PRODUCTS)
        products.create_index(
            [
                ("name", TEXT),
                ("description", TEXT),
                ("brand", TEXT),
                ("tags", TEXT),
                ("search_keywords", TEXT),
            ],
            name="product_text",
        )
        products.create_index("category")
        products.create_index("created_by")
        products.create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])

        adopted = self.db.get_collection(ADOPTED_PRODUCTS)
        adopted.create_index([("owner_id", ASCENDING), ("original_product_id", ASCENDING)])
        # One record per (owner, product, weight)
        adopted.create_index(
            [("owner_id", ASCENDING), ("original_product_id", ASCENDING), ("selected_weight", ASCENDING)],
            unique=True,
        )
        adopted.create_index([("owner_id", ASCENDING), ("product_created_at", DESCENDING)])
        logger.info("MongoDB indexes created")


# Singleton instance
mongo_client = MongoDBClient()
