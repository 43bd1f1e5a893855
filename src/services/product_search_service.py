"""Admin product search service with caching capabilities."""

import hashlib
import json
import logging
import math
import re
from typing import Any

from pymongo import ASCENDING, DESCENDING

from src.config import CACHE_TTL, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.db.mongodb_client import ADMIN_PRODUCTS, ADOPTED_PRODUCTS, mongo_client
from src.db.redis_client import redis_client
from src.services.errors import ValidationError
from src.utils.serialization import serialize_doc, to_object_id

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("created_at", "updated_at", "name", "price", "discounted_price", "adoption_count")
CACHE_PREFIX = "product_search:"


def build_pagination(page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_products": total,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def validate_paging(page: int, limit: int, sort_order: str) -> list[str]:
    errors = []
    if page < 1:
        errors.append("Page must be 1 or greater")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        errors.append(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    if sort_order not in ("asc", "desc"):
        errors.append("Sort order must be 'asc' or 'desc'")
    return errors


class ProductSearchService:
    def __init__(self):
        self.cache_ttl = CACHE_TTL
        self.cache_hit_count = 0
        self.cache_miss_count = 0

    def _generate_cache_key(self, query: str | None, filters: dict[str, Any]) -> str:
        """Generate a cache key for search parameters."""
        search_params = {"query": query, "filters": filters}
        params_str = json.dumps(search_params, sort_keys=True)
        return f"{CACHE_PREFIX}{hashlib.md5(params_str.encode()).hexdigest()}"

    def get_cache_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total_requests = self.cache_hit_count + self.cache_miss_count
        if total_requests == 0:
            return 0.0
        return self.cache_hit_count / total_requests

    def build_search_filter(
        self,
        query: str | None = None,
        category: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        brand: str | None = None,
        weights: list[str] | None = None,
    ) -> dict[str, Any]:
        """Translate search options into a MongoDB filter over active products."""
        search_filter: dict[str, Any] = {"is_active": True}

        if query and query.strip():
            search_filter["$text"] = {"$search": query.strip()}

        if category and category != "all":
            search_filter["category"] = category

        if min_price is not None or max_price is not None:
            search_filter["price"] = {}
            if min_price is not None:
                search_filter["price"]["$gte"] = min_price
            if max_price is not None:
                search_filter["price"]["$lte"] = max_price

        if brand:
            search_filter["brand"] = {"$regex": re.escape(brand), "$options": "i"}

        if weights:
            search_filter["available_weights"] = {"$in": list(weights)}

        return search_filter

    def search_products(
        self,
        query: str | None = None,
        category: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        brand: str | None = None,
        weights: list[str] | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict[str, Any]:
        """
        Search active admin products with full-text search, filters and caching.

        Args:
            query: Text matched against name, description, brand, tags and keywords
            category: Exact category ("all" disables the filter)
            min_price: Minimum price filter
            max_price: Maximum price filter
            brand: Case-insensitive brand substring
            weights: Match products offering any of these weights
            page: 1-based page number
            limit: Page size
            sort_by: Field to sort on
            sort_order: "asc" or "desc"

        Returns:
            Dict containing products, pagination and cache info
        """
        errors = validate_paging(page, limit, sort_order)
        if sort_by not in SORTABLE_FIELDS:
            errors.append(f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORTABLE_FIELDS)}")
        if min_price is not None and max_price is not None and min_price > max_price:
            errors.append("Minimum price cannot exceed maximum price")
        if errors:
            raise ValidationError(errors)

        filters = {
            "category": category,
            "min_price": min_price,
            "max_price": max_price,
            "brand": brand,
            "weights": sorted(weights) if weights else None,
            "page": page,
            "limit": limit,
            "sort_by": sort_by,
            "sort_order": sort_order,
        }

        cache_key = self._generate_cache_key(query, filters)

        cached_result = redis_client.get_json(cache_key)
        if cached_result:
            self.cache_hit_count += 1
            logger.info(f"Cache hit for search: {query}")
            return {**cached_result, "cache_hit": True}

        self.cache_miss_count += 1
        logger.info(f"Cache miss for search: {query}")

        search_filter = self.build_search_filter(query, category, min_price, max_price, brand, weights)
        has_text = "$text" in search_filter

        sort = [(sort_by, DESCENDING if sort_order == "desc" else ASCENDING)]
        projection = None
        if has_text:
            # Rank by text relevance after the requested sort key
            sort.append(("score", {"$meta": "textScore"}))
            projection = {"score": {"$meta": "textScore"}}

        try:
            collection = mongo_client.get_collection(ADMIN_PRODUCTS)
            total_count = collection.count_documents(search_filter)
            cursor = collection.find(search_filter, projection).sort(sort).skip((page - 1) * limit).limit(limit)
            products = [serialize_doc(doc) for doc in cursor]
        except Exception as e:
            logger.error(f"Error searching products: {e}")
            raise e

        result = {
            "products": products,
            "pagination": build_pagination(page, limit, total_count),
            "query": query,
            "filters": filters,
        }

        redis_client.set_json(cache_key, result, self.cache_ttl)

        return {**result, "cache_hit": False}

    def search_available_products(self, owner_id: str, query: str | None = None, **options) -> dict[str, Any]:
        """Search admin products for a business owner, flagging the ones already adopted."""
        result = self.search_products(query, **options)

        adopted_ids = mongo_client.get_collection(ADOPTED_PRODUCTS).distinct(
            "original_product_id", {"owner_id": to_object_id(owner_id)}
        )
        adopted = {str(product_id) for product_id in adopted_ids if product_id is not None}

        products = [{**product, "is_adopted": product["id"] in adopted} for product in result["products"]]
        return {**result, "products": products}

    def clear_search_cache(self) -> bool:
        """Clear all search-related cache entries."""
        try:
            removed = redis_client.delete_matching(f"{CACHE_PREFIX}*")
            if removed:
                logger.info(f"Cleared {removed} search cache entries")
            return True

        except Exception as e:
            logger.error(f"Error clearing search cache: {e}")
            return False


# Singleton instance
product_search_service = ProductSearchService()
