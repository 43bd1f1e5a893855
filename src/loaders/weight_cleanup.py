"""Strip a legacy "custom" token from stored product weight lists."""

import logging

from src.db.mongodb_client import ADMIN_PRODUCTS, mongo_client
from src.models.variants import CUSTOM_WEIGHT_TOKEN, strip_custom_token
from src.utils.serialization import utcnow

logger = logging.getLogger(__name__)


class WeightCleanup:
    def __init__(self):
        self.client = mongo_client

    def run(self) -> dict[str, int]:
        """Rewrite every product whose available_weights still holds the "custom" token."""
        col = self.client.get_collection(ADMIN_PRODUCTS)
        products = list(col.find({"available_weights": CUSTOM_WEIGHT_TOKEN}, {"name": 1, "available_weights": 1}))
        logger.info(f"Found {len(products)} products with '{CUSTOM_WEIGHT_TOKEN}' in available_weights")

        updated, failed = 0, 0
        for product in products:
            try:
                col.update_one(
                    {"_id": product["_id"]},
                    {"$set": {"available_weights": strip_custom_token(product["available_weights"]), "updated_at": utcnow()}},
                )
                updated += 1
            except Exception as e:
                logger.error(f"Error updating product {product['_id']}: {e}")
                failed += 1

        logger.info(f"Cleanup summary: {updated} updated, {failed} failed, {len(products)} processed")
        return {"updated": updated, "failed": failed, "total_processed": len(products)}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    WeightCleanup().run()
