"""Business owner inventory of adopted products."""

import logging
import re
from typing import Any

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from src.config import DEFAULT_PAGE_SIZE
from src.db.mongodb_client import ADMIN_PRODUCTS, ADOPTED_PRODUCTS, USERS, mongo_client
from src.models.adopted_products import AdoptedProductUpdate
from src.models.products import validate_fields
from src.models.users import Principal, Role
from src.services.adoption_service import validate_stock_fields
from src.services.errors import NotFoundError, ValidationError
from src.services.product_search_service import build_pagination, product_search_service, validate_paging
from src.utils.serialization import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = (
    "product_created_at",
    "product_updated_at",
    "name",
    "price",
    "product_quantity",
    "stock_status",
    "selected_weight",
)


class AdoptedInventoryService:
    def _collection(self):
        return mongo_client.get_collection(ADOPTED_PRODUCTS)

    def _owner_filter(self, principal: Principal) -> dict[str, Any]:
        principal.require_role(Role.BUSINESS_OWNER)
        owner_oid = to_object_id(principal.id)
        if not owner_oid:
            raise NotFoundError("Business owner not found")
        return {"owner_id": owner_oid}

    def list_adopted_products(
        self,
        principal: Principal,
        category: str | None = None,
        stock_status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_by: str = "product_created_at",
        sort_order: str = "desc",
    ) -> dict[str, Any]:
        """
        List the caller's adopted products with filters, sorting and pagination.

        Records the owner authored themselves (no original product) are excluded.
        """
        errors = validate_paging(page, limit, sort_order)
        if sort_by not in SORTABLE_FIELDS:
            errors.append(f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORTABLE_FIELDS)}")
        if errors:
            raise ValidationError(errors)

        owner_filter = self._owner_filter(principal)
        if not mongo_client.get_collection(USERS).find_one({"_id": owner_filter["owner_id"]}, {"_id": 1}):
            raise NotFoundError("Business owner not found")

        query = {**owner_filter, "original_product_id": {"$ne": None}}
        if category and category != "all":
            query["category"] = category
        if stock_status and stock_status != "all":
            query["stock_status"] = stock_status
        if search and search.strip():
            pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"brand": pattern}, {"description": pattern}]

        collection = self._collection()
        total = collection.count_documents(query)
        direction = DESCENDING if sort_order == "desc" else ASCENDING
        cursor = collection.find(query).sort([(sort_by, direction), ("_id", direction)]).skip((page - 1) * limit).limit(limit)

        return {
            "products": [serialize_doc(doc) for doc in cursor],
            "pagination": build_pagination(page, limit, total),
        }

    def update_adopted_product(
        self, principal: Principal, adopted_id: str, data: AdoptedProductUpdate | dict[str, Any]
    ) -> dict[str, Any]:
        """
        Change stock status, quantity or selected weight of one adopted record.

        Each field is checked on its own; all invalid fields are reported together.
        """
        data, errors = validate_fields(AdoptedProductUpdate, data)

        owner_filter = self._owner_filter(principal)
        record_oid = to_object_id(adopted_id)
        collection = self._collection()
        record = collection.find_one({"_id": record_oid, **owner_filter}) if record_oid else None
        if not record:
            raise NotFoundError("Product not found in your adopted products")

        errors.extend(validate_stock_fields(data.stock_status, data.product_quantity))
        if data.selected_weight is not None and data.selected_weight not in (record.get("available_weights") or []):
            errors.append("Invalid weight selection")
        if errors:
            raise ValidationError(errors)

        changes: dict[str, Any] = {"product_updated_at": utcnow()}
        if data.stock_status is not None:
            changes["stock_status"] = data.stock_status
        if data.product_quantity is not None:
            changes["product_quantity"] = int(data.product_quantity)
        if data.selected_weight is not None:
            changes["selected_weight"] = data.selected_weight

        updated = collection.find_one_and_update(
            {"_id": record["_id"], **owner_filter}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if not updated:
            raise NotFoundError("Product not found in your adopted products")
        return serialize_doc(updated)

    def remove_adopted_product(self, principal: Principal, adopted_id: str) -> dict[str, Any]:
        """Delete one adopted record and give back its count on the source product."""
        owner_filter = self._owner_filter(principal)
        record_oid = to_object_id(adopted_id)
        if not record_oid:
            raise NotFoundError("Product not found in your adopted products")

        with mongo_client.transaction() as session:
            removed = self._collection().find_one_and_delete({"_id": record_oid, **owner_filter}, session=session)
            if not removed:
                raise NotFoundError("Product not found in your adopted products")
            # No floor: a drifted count may go negative
            if removed.get("original_product_id"):
                mongo_client.get_collection(ADMIN_PRODUCTS).update_one(
                    {"_id": removed["original_product_id"]},
                    {"$inc": {"adoption_count": -1}},
                    session=session,
                )

        original_id = removed.get("original_product_id")
        if original_id:
            product_search_service.clear_search_cache()
        logger.info(f"Owner {principal.id} removed adopted product {adopted_id}")
        return {"product_id": str(removed["_id"]), "original_product_id": str(original_id) if original_id else None}


# Singleton instance
adopted_inventory_service = AdoptedInventoryService()
