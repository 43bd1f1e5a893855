"""
Infrastructure Setup Script for the Storefront Catalog Backend
This script checks the database connections and creates the indexes the services rely on.
"""

import logging

from src.db.mongodb_client import ADMIN_PRODUCTS, ADOPTED_PRODUCTS, mongo_client
from src.db.redis_client import redis_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_database_connections():
    """Check if all database connections are working."""
    logger.info("Checking database connections...")

    # Check MongoDB
    try:
        mongo_client.client.admin.command("ping")
        logger.info("✅ MongoDB connection: OK")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        return False

    # Check Redis
    try:
        redis_client.client.ping()
        logger.info("✅ Redis connection: OK")
    except Exception as e:
        logger.error(f"❌ Redis connection error: {e}")
        return False

    return True


def report_collections():
    """Log how much data is already present."""
    products = mongo_client.get_collection(ADMIN_PRODUCTS).count_documents({"is_active": True})
    adopted = mongo_client.get_collection(ADOPTED_PRODUCTS).count_documents({})
    logger.info(f"📦 Active admin products: {products}")
    logger.info(f"🏪 Adopted products: {adopted}")


def main():
    """Main setup function."""
    logger.info("🚀 Setting up Storefront Catalog Backend...")

    if not check_database_connections():
        logger.error("❌ Database connection check failed!")
        return False

    mongo_client.create_indexes()
    report_collections()

    logger.info("✅ Setup complete! Ready to start the server.")
    return True


if __name__ == "__main__":
    main()
