"""Admin product catalog: creation, updates, soft deletion and bulk operations."""

import logging
from datetime import datetime
from typing import Any

from pymongo import ReturnDocument

from src.config import (
    ALLOWED_IMAGE_TYPES,
    BULK_CREATE_LIMIT,
    BULK_DELETE_LIMIT,
    MAX_IMAGE_BYTES,
    MAX_PRODUCT_IMAGES,
    MIN_PRODUCT_IMAGES,
)
from src.db.blob_store import blob_store
from src.db.mongodb_client import ADMIN_PRODUCTS, mongo_client
from src.models.products import (
    BRAND_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NON_NULLABLE_UPDATE_FIELDS,
    VALID_CATEGORIES,
    ImageUpload,
    ProductCreate,
    ProductUpdate,
    build_search_keywords,
    validate_fields,
)
from src.models.users import Principal, Role
from src.models.variants import (
    parse_custom_weights,
    parse_weight_selections,
    split_weight_selections,
)
from src.services.discount import calculate_discounted_price, is_discount_active
from src.services.errors import AuthorizationError, CatalogError, DependencyError, NotFoundError, ValidationError
from src.services.product_search_service import product_search_service
from src.utils.serialization import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)


def validate_images(images: list[ImageUpload]) -> list[str]:
    errors = []
    if len(images) < MIN_PRODUCT_IMAGES:
        errors.append(f"Minimum {MIN_PRODUCT_IMAGES} product images are required")
    if len(images) > MAX_PRODUCT_IMAGES:
        errors.append(f"Maximum {MAX_PRODUCT_IMAGES} product images are allowed")
    for image in images:
        if image.content_type not in ALLOWED_IMAGE_TYPES:
            errors.append(f"Invalid file type for {image.filename}. Only JPEG, PNG, and WebP images are allowed.")
        if len(image.content) > MAX_IMAGE_BYTES:
            errors.append(f"{image.filename} exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)}MB size limit")
    return errors


def validate_text_fields(name: str | None, description: str | None, brand: str | None) -> list[str]:
    errors = []
    if name is not None and len(name.strip()) > NAME_MAX_LENGTH:
        errors.append(f"Product name must be {NAME_MAX_LENGTH} characters or less")
    if description is not None and len(description.strip()) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"Product description must be {DESCRIPTION_MAX_LENGTH} characters or less")
    if brand and len(brand.strip()) > BRAND_MAX_LENGTH:
        errors.append(f"Product brand must be {BRAND_MAX_LENGTH} characters or less")
    return errors


def build_product_document(data: ProductCreate | dict[str, Any], created_by: str) -> dict[str, Any]:
    """
    Validate a creation payload and build the document to insert (without images).

    Raises:
        ValidationError: listing every problem found in the payload, field type errors included
    """
    payload, errors = validate_fields(ProductCreate, data)
    if not payload.name.strip() or not payload.description.strip() or payload.price is None or not payload.category:
        errors.append("Product name, description, price, and category are required")
    errors.extend(validate_text_fields(payload.name, payload.description, payload.brand))
    if payload.price is not None and payload.price < 0:
        errors.append("Product price must be a valid positive number")
    if payload.category and payload.category not in VALID_CATEGORIES:
        errors.append("Invalid product category")

    available_weights, custom_weights = [], []
    try:
        selections = parse_weight_selections(payload.available_weights, payload.custom_weights)
        available_weights, custom_weights = split_weight_selections(selections)
    except ValidationError as e:
        errors.extend(e.errors)

    discounted_price = payload.price
    if payload.price is not None and payload.price >= 0:
        try:
            discounted_price = calculate_discounted_price(
                payload.price,
                payload.discount_type,
                payload.discount_value,
                payload.discount_start_date,
                payload.discount_end_date,
            )
        except ValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise ValidationError(errors)

    name = payload.name.strip()
    brand = payload.brand.strip() if payload.brand and payload.brand.strip() else None
    now = utcnow()
    return {
        "name": name,
        "description": payload.description.strip(),
        "price": float(payload.price),
        "category": payload.category,
        "brand": brand,
        "tags": [tag.strip() for tag in payload.tags if tag.strip()],
        "search_keywords": build_search_keywords(name, brand, payload.category),
        "discount_type": payload.discount_type.value,
        "discount_value": float(payload.discount_value or 0),
        "discount_start_date": payload.discount_start_date,
        "discount_end_date": payload.discount_end_date,
        "discounted_price": discounted_price,
        "available_weights": available_weights,
        "custom_weights": custom_weights,
        "images": [],
        "created_by": to_object_id(created_by) or created_by,
        "is_active": True,
        "adoption_count": 0,
        "created_at": now,
        "updated_at": now,
    }


def present_product(doc: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Serialize a product document and flag whether its discount window is open."""
    product = serialize_doc(doc)
    product["discount_active"] = doc.get("discount_type", "none") != "none" and is_discount_active(
        doc.get("discount_start_date"), doc.get("discount_end_date"), now or utcnow()
    )
    return product


class AdminProductService:
    def _collection(self):
        return mongo_client.get_collection(ADMIN_PRODUCTS)

    def _find_product(self, product_id: str) -> dict[str, Any]:
        object_id = to_object_id(product_id)
        product = self._collection().find_one({"_id": object_id}) if object_id else None
        if not product:
            raise NotFoundError("Product not found")
        return product

    def _ensure_can_modify(self, principal: Principal, product: dict[str, Any], action: str):
        if str(product.get("created_by")) != principal.id and not principal.is_admin:
            raise AuthorizationError(f"Not authorized to {action} this product")

    def _delete_images_best_effort(self, product: dict[str, Any]):
        storage_ids = [img["storage_id"] for img in product.get("images") or [] if img.get("storage_id")]
        if not storage_ids:
            return
        try:
            blob_store.delete_many(storage_ids)
        except DependencyError as e:
            # Image cleanup never blocks the soft delete
            logger.warning(f"Error deleting images for product {product['_id']}: {e}")

    def create_product(
        self, principal: Principal, data: ProductCreate | dict[str, Any], images: list[ImageUpload]
    ) -> dict[str, Any]:
        """
        Create an admin product with its images.

        Args:
            principal: Authenticated admin
            data: Product fields
            images: Image files to upload

        Returns:
            The stored product

        Raises:
            ValidationError: payload or images are invalid (all problems listed)
            DependencyError: image upload failed; nothing was saved
        """
        principal.require_role(Role.ADMIN)

        errors = []
        try:
            document = build_product_document(data, principal.id)
        except ValidationError as e:
            errors.extend(e.errors)
            document = None
        errors.extend(validate_images(images))
        if errors:
            raise ValidationError(errors)

        logger.info(f"Uploading {len(images)} images for category: {document['category']}")
        uploaded = blob_store.upload_many(images, document["category"])
        document["images"] = [img.model_dump() for img in uploaded]

        try:
            result = self._collection().insert_one(document)
        except Exception as e:
            logger.error(f"Error saving product, removing uploaded images: {e}")
            try:
                blob_store.delete_many([img.storage_id for img in uploaded])
            except DependencyError as cleanup_error:
                logger.warning(f"Could not remove images after failed save: {cleanup_error}")
            raise e

        document["_id"] = result.inserted_id
        product_search_service.clear_search_cache()
        logger.info(f"Created product {result.inserted_id} ({document['name']})")
        return present_product(document)

    def create_products_bulk(self, principal: Principal, items: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Create several products without images. Each item succeeds or fails on its own.

        Returns:
            Dict with successful and failed entries (1-based index) and the number processed
        """
        principal.require_role(Role.ADMIN)

        if not items or not isinstance(items, list):
            raise ValidationError("Products array is required and cannot be empty")
        if len(items) > BULK_CREATE_LIMIT:
            raise ValidationError(f"Maximum {BULK_CREATE_LIMIT} products can be created at once")

        results = {"successful": [], "failed": [], "total_processed": len(items)}
        collection = self._collection()

        for index, item in enumerate(items, start=1):
            name = item.get("name") if isinstance(item, dict) else None
            try:
                document = build_product_document(item, principal.id)
                inserted = collection.insert_one(document)
                results["successful"].append(
                    {
                        "index": index,
                        "product_id": str(inserted.inserted_id),
                        "name": document["name"],
                        "category": document["category"],
                    }
                )
            except CatalogError as e:
                results["failed"].append({"index": index, "name": name or "Unknown", "error": e.message})
            except Exception as e:
                logger.error(f"Error creating product {index}: {e}")
                results["failed"].append(
                    {"index": index, "name": name or "Unknown", "error": str(e) or "Failed to create product"}
                )

        if results["successful"]:
            product_search_service.clear_search_cache()
        logger.info(
            f"Bulk creation completed. {len(results['successful'])} created, {len(results['failed'])} failed"
        )
        return results

    def get_product(self, product_id: str) -> dict[str, Any]:
        """Return an active product or raise NotFoundError."""
        product = self._find_product(product_id)
        if not product.get("is_active", True):
            raise NotFoundError("Product is no longer available")
        return present_product(product)

    def get_custom_weights(self, product_id: str) -> dict[str, Any]:
        product = self._find_product(product_id)
        if not product.get("is_active", True):
            raise NotFoundError("Product is no longer available")
        custom_weights = product.get("custom_weights") or []
        return {"custom_weights": custom_weights, "has_custom_weights": bool(custom_weights)}

    def update_product(self, principal: Principal, product_id: str, data: ProductUpdate | dict[str, Any]) -> dict[str, Any]:
        """
        Update the allow-listed fields of a product.

        Discount price is recomputed when price or discount fields change and weights are
        re-validated when they change. Only the creator or an admin may update.
        """
        data, errors = validate_fields(ProductUpdate, data)

        product = self._find_product(product_id)
        self._ensure_can_modify(principal, product, "update")

        updates = data.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_UPDATE_FIELDS:
            if field in updates and updates[field] is None:
                errors.append(f"{field} cannot be null")
                del updates[field]

        for field in ("name", "description", "brand"):
            if isinstance(updates.get(field), str):
                updates[field] = updates[field].strip()
        if "name" in updates and not updates["name"]:
            errors.append("Product name cannot be empty")
        if "description" in updates and not updates["description"]:
            errors.append("Product description cannot be empty")
        errors.extend(validate_text_fields(updates.get("name"), updates.get("description"), updates.get("brand")))

        if "available_weights" in updates:
            custom_source = updates.get("custom_weights")
            if custom_source is None:
                custom_source = product.get("custom_weights") or []
            try:
                selections = parse_weight_selections(updates["available_weights"], custom_source)
                updates["available_weights"], updates["custom_weights"] = split_weight_selections(selections)
            except ValidationError as e:
                errors.extend(e.errors)
        elif "custom_weights" in updates:
            custom, custom_errors = parse_custom_weights(updates["custom_weights"])
            errors.extend(custom_errors)
            updates["custom_weights"] = [
                {"value": w.value, "unit": w.unit.value, "description": w.description} for w in custom
            ]

        if "discount_type" in updates:
            updates["discount_type"] = updates["discount_type"].value

        if {"price", "discount_type", "discount_value", "discount_start_date", "discount_end_date"} & updates.keys():
            merged = {**product, **updates}
            try:
                updates["discounted_price"] = calculate_discounted_price(
                    merged["price"],
                    merged.get("discount_type"),
                    merged.get("discount_value"),
                    merged.get("discount_start_date"),
                    merged.get("discount_end_date"),
                )
            except ValidationError as e:
                errors.extend(e.errors)

        if errors:
            raise ValidationError(errors)

        if "name" in updates or "brand" in updates:
            updates["search_keywords"] = build_search_keywords(
                updates.get("name", product.get("name")),
                updates.get("brand", product.get("brand")),
                product.get("category"),
            )
        if "tags" in updates:
            updates["tags"] = [tag.strip() for tag in updates["tags"] if tag.strip()]

        updates["updated_at"] = utcnow()
        updated = self._collection().find_one_and_update(
            {"_id": product["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        if not updated:
            raise NotFoundError("Product not found")

        product_search_service.clear_search_cache()
        logger.info(f"Updated product {product['_id']}: {', '.join(sorted(updates))}")
        return present_product(updated)

    def delete_product(self, principal: Principal, product_id: str) -> dict[str, Any]:
        """Soft-delete a product and remove its images from storage on a best-effort basis."""
        product = self._find_product(product_id)
        self._ensure_can_modify(principal, product, "delete")

        self._delete_images_best_effort(product)
        self._collection().update_one({"_id": product["_id"]}, {"$set": {"is_active": False, "updated_at": utcnow()}})

        product_search_service.clear_search_cache()
        logger.info(f"Soft-deleted product {product['_id']}")
        return {"product_id": str(product["_id"]), "name": product.get("name")}

    def delete_products_bulk(self, principal: Principal, product_ids: list[str]) -> dict[str, Any]:
        """Soft-delete several products, recording success or failure per id."""
        if not product_ids or not isinstance(product_ids, list):
            raise ValidationError("Product IDs array is required and cannot be empty")
        if len(product_ids) > BULK_DELETE_LIMIT:
            raise ValidationError(f"Maximum {BULK_DELETE_LIMIT} products can be deleted at once")

        results = {"successful": [], "failed": [], "total_processed": len(product_ids)}
        for product_id in product_ids:
            try:
                results["successful"].append(self.delete_product(principal, product_id))
            except CatalogError as e:
                results["failed"].append({"product_id": product_id, "error": e.message})
            except Exception as e:
                logger.error(f"Error deleting product {product_id}: {e}")
                results["failed"].append({"product_id": product_id, "error": str(e) or "Failed to delete product"})

        logger.info(
            f"Bulk deletion completed. {len(results['successful'])} deleted, {len(results['failed'])} failed"
        )
        return results


# Singleton instance
admin_product_service = AdminProductService()
