"""Adoption of admin products into a business owner's inventory."""

import logging
from typing import Any

from pymongo.errors import DuplicateKeyError

from src.db.mongodb_client import ADMIN_PRODUCTS, ADOPTED_PRODUCTS, USERS, mongo_client
from src.models.adopted_products import VALID_STOCK_STATUSES, StockStatus
from src.models.users import Principal, Role
from src.models.variants import validate_weight_tokens
from src.services.errors import ConflictError, NotFoundError, ValidationError
from src.services.product_search_service import product_search_service
from src.utils.serialization import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)


def validate_stock_fields(stock_status: Any, product_quantity: Any) -> list[str]:
    """Check stock status and quantity, returning one message per invalid field."""
    errors = []
    if stock_status is not None and stock_status not in VALID_STOCK_STATUSES:
        errors.append("Invalid stock status")
    if product_quantity is not None:
        if isinstance(product_quantity, bool) or not isinstance(product_quantity, (int, float)) or product_quantity < 0:
            errors.append("Product quantity must be a valid non-negative number")
    return errors


class AdoptionService:
    def adopt_product(
        self,
        principal: Principal,
        product_id: str,
        selected_weights: list[str],
        stock_status: str = StockStatus.IN_STOCK.value,
        product_quantity: int | float = 0,
    ) -> list[dict[str, Any]]:
        """
        Copy an admin product into the caller's inventory, one record per selected weight.

        Args:
            principal: Authenticated business owner
            product_id: Admin product to adopt
            selected_weights: Weights to adopt; each must be offered by the product
            stock_status: Initial stock status for every new record
            product_quantity: Initial quantity for every new record

        Returns:
            The created records with their ids

        Raises:
            ValidationError: no weights, weights the product does not offer, bad stock fields
            NotFoundError: product missing/inactive, or business owner missing
            ConflictError: the owner has already adopted this product
        """
        principal.require_role(Role.BUSINESS_OWNER)

        errors = validate_stock_fields(stock_status, product_quantity)
        if not selected_weights or not isinstance(selected_weights, list):
            raise ValidationError(["At least one weight option must be selected", *errors])

        products = mongo_client.get_collection(ADMIN_PRODUCTS)
        product_oid = to_object_id(product_id)
        admin_product = products.find_one({"_id": product_oid}) if product_oid else None
        if not admin_product or not admin_product.get("is_active", True):
            raise NotFoundError("Product not found or no longer available")

        try:
            validate_weight_tokens(
                selected_weights,
                allowed=set(admin_product.get("available_weights") or []),
                label="Invalid weight selections",
            )
        except ValidationError as e:
            errors = [*e.errors, *errors]
        if errors:
            raise ValidationError(errors)

        owner_oid = to_object_id(principal.id)
        owner = mongo_client.get_collection(USERS).find_one({"_id": owner_oid}) if owner_oid else None
        if not owner:
            raise NotFoundError("Business owner not found")

        adopted = mongo_client.get_collection(ADOPTED_PRODUCTS)
        # Any earlier adoption blocks this one, whatever weights it covered
        if adopted.find_one({"owner_id": owner["_id"], "original_product_id": admin_product["_id"]}):
            raise ConflictError("Product has already been adopted")

        weights = list(dict.fromkeys(selected_weights))
        now = utcnow()
        records = [
            {
                "owner_id": owner["_id"],
                "adopted_by": owner["_id"],
                "owner_email": owner.get("email"),
                "original_product_id": admin_product["_id"],
                "name": admin_product.get("name"),
                "description": admin_product.get("description"),
                "price": admin_product.get("price"),
                "category": admin_product.get("category"),
                "brand": admin_product.get("brand"),
                "images": list(admin_product.get("images") or []),
                "available_weights": list(admin_product.get("available_weights") or []),
                "selected_weight": weight,
                "stock_status": stock_status,
                "product_quantity": int(product_quantity),
                "product_created_at": now,
                "product_updated_at": now,
            }
            for weight in weights
        ]

        try:
            with mongo_client.transaction() as session:
                result = adopted.insert_many(records, session=session)
                products.update_one(
                    {"_id": admin_product["_id"]},
                    {"$inc": {"adoption_count": len(records)}},
                    session=session,
                )
        except DuplicateKeyError:
            raise ConflictError("Product has already been adopted")

        for record, inserted_id in zip(records, result.inserted_ids):
            record["_id"] = inserted_id

        product_search_service.clear_search_cache()
        logger.info(f"Owner {principal.id} adopted product {product_id} with {len(records)} weight option(s)")
        return [serialize_doc(record) for record in records]


# Singleton instance
adoption_service = AdoptionService()
