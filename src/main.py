"""FastAPI application for the storefront catalog backend."""

import json
import logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, File, Form, Header, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from src.config import DEFAULT_PAGE_SIZE, settings
from src.models.adopted_products import AdoptRequest
from src.models.products import ImageUpload, category_options
from src.models.users import Principal, Role
from src.models.variants import custom_weight_unit_options, weight_options
from src.services.admin_product_service import admin_product_service
from src.services.adopted_inventory_service import adopted_inventory_service
from src.services.adoption_service import adoption_service
from src.services.errors import (
    AuthorizationError,
    CatalogError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from src.services.product_search_service import product_search_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Admin product catalog with business-owner adoption and inventory management",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    DependencyError: 502,
}


@app.exception_handler(CatalogError)
async def catalog_error_handler(request, exc: CatalogError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    content: dict[str, Any] = {"success": False, "message": exc.message}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(PyMongoError)
async def database_error_handler(request, exc: PyMongoError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"success": False, "message": "Database unavailable"})


def get_principal(x_user_id: str = Header(...), x_user_role: Role = Header(...)) -> Principal:
    """Identity forwarded by the upstream auth gateway."""
    return Principal(id=x_user_id, role=x_user_role)


def split_weights(weights: Optional[str]) -> Optional[list[str]]:
    if not weights:
        return None
    return [w.strip() for w in weights.split(",") if w.strip()]


# Pydantic models for request bodies
class BulkCreateRequest(BaseModel):
    products: list[Any]


class BulkDeleteRequest(BaseModel):
    product_ids: list[str]


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


# Admin product endpoints
@app.post("/api/admin/products", status_code=201)
async def create_admin_product(
    payload: str = Form(..., description="Product fields as a JSON object"),
    images: list[UploadFile] = File(default=[]),
    principal: Principal = Depends(get_principal),
):
    """Create a product with its images."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        raise ValidationError("Product payload must be valid JSON")

    uploads = [
        ImageUpload(
            filename=image.filename or "image",
            content=await image.read(),
            content_type=image.content_type or "application/octet-stream",
        )
        for image in images
    ]
    product = admin_product_service.create_product(principal, data, uploads)
    return {"success": True, "message": "Product created successfully", "product": product}


@app.get("/api/admin/products")
async def list_admin_products(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    brand: Optional[str] = Query(None),
    weights: Optional[str] = Query(None, description="Comma-separated weight tokens"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    principal: Principal = Depends(get_principal),
):
    """Search and list active admin products."""
    principal.require_role(Role.ADMIN)
    result = product_search_service.search_products(
        query=search,
        category=category,
        min_price=min_price,
        max_price=max_price,
        brand=brand,
        weights=split_weights(weights),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, **result}


@app.post("/api/admin/products/bulk", status_code=201)
async def bulk_create_admin_products(request: BulkCreateRequest, principal: Principal = Depends(get_principal)):
    """Create up to 50 products without images."""
    results = admin_product_service.create_products_bulk(principal, request.products)
    return {
        "success": True,
        "message": (
            f"Bulk creation completed. {len(results['successful'])} products created successfully, "
            f"{len(results['failed'])} failed."
        ),
        "results": results,
    }


@app.post("/api/admin/products/bulk-delete")
async def bulk_delete_admin_products(request: BulkDeleteRequest, principal: Principal = Depends(get_principal)):
    """Soft-delete up to 100 products."""
    results = admin_product_service.delete_products_bulk(principal, request.product_ids)
    return {
        "success": True,
        "message": (
            f"Bulk deletion completed. {len(results['successful'])} products deleted successfully, "
            f"{len(results['failed'])} failed."
        ),
        "results": results,
    }


@app.get("/api/admin/products/{product_id}")
async def get_admin_product(product_id: str, principal: Principal = Depends(get_principal)):
    """Get an active product by id."""
    principal.require_role(Role.ADMIN)
    return {"success": True, "product": admin_product_service.get_product(product_id)}


@app.get("/api/admin/products/{product_id}/custom-weights")
async def get_admin_product_custom_weights(product_id: str, principal: Principal = Depends(get_principal)):
    """Get the custom weight entries of a product."""
    principal.require_role(Role.ADMIN)
    return {"success": True, **admin_product_service.get_custom_weights(product_id)}


@app.put("/api/admin/products/{product_id}")
async def update_admin_product(
    product_id: str,
    updates: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_principal),
):
    """Update the editable fields of a product."""
    product = admin_product_service.update_product(principal, product_id, updates)
    return {"success": True, "message": "Product updated successfully", "product": product}


@app.delete("/api/admin/products/{product_id}")
async def delete_admin_product(product_id: str, principal: Principal = Depends(get_principal)):
    """Soft-delete a product."""
    admin_product_service.delete_product(principal, product_id)
    return {"success": True, "message": "Product deleted successfully"}


# Business owner endpoints
@app.get("/api/business-owner/products/search")
async def search_available_products(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    brand: Optional[str] = Query(None),
    weights: Optional[str] = Query(None, description="Comma-separated weight tokens"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    principal: Principal = Depends(get_principal),
):
    """Search admin products, flagging the ones the caller already adopted."""
    principal.require_role(Role.BUSINESS_OWNER)
    result = product_search_service.search_available_products(
        principal.id,
        query=search,
        category=category,
        min_price=min_price,
        max_price=max_price,
        brand=brand,
        weights=split_weights(weights),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, **result}


@app.post("/api/business-owner/products/{product_id}/adopt", status_code=201)
async def adopt_product(product_id: str, request: AdoptRequest, principal: Principal = Depends(get_principal)):
    """Adopt an admin product in one or more weights."""
    adopted = adoption_service.adopt_product(
        principal,
        product_id,
        request.selected_weights,
        stock_status=request.stock_status,
        product_quantity=request.product_quantity,
    )
    return {
        "success": True,
        "message": f"Product adopted successfully with {len(adopted)} weight option(s)",
        "adopted_products": adopted,
    }


@app.get("/api/business-owner/products/adopted")
async def list_adopted_products(
    category: Optional[str] = Query(None),
    stock_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    sort_by: str = Query("product_created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    principal: Principal = Depends(get_principal),
):
    """List the caller's adopted products."""
    result = adopted_inventory_service.list_adopted_products(
        principal,
        category=category,
        stock_status=stock_status,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, **result}


@app.put("/api/business-owner/products/adopted/{adopted_id}")
async def update_adopted_product(
    adopted_id: str,
    updates: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_principal),
):
    """Update stock status, quantity or selected weight of an adopted product."""
    product = adopted_inventory_service.update_adopted_product(principal, adopted_id, updates)
    return {"success": True, "message": "Product updated successfully", "product": product}


@app.delete("/api/business-owner/products/adopted/{adopted_id}")
async def remove_adopted_product(adopted_id: str, principal: Principal = Depends(get_principal)):
    """Remove an adopted product from the caller's inventory."""
    adopted_inventory_service.remove_adopted_product(principal, adopted_id)
    return {"success": True, "message": "Product removed successfully"}


# Public reference data for product forms
@app.get("/api/categories")
async def get_categories():
    """Get product categories."""
    return {"success": True, "categories": category_options()}


@app.get("/api/custom-weight-units")
async def get_custom_weight_units():
    """Get units allowed for custom weights."""
    return {"success": True, "custom_weight_units": custom_weight_unit_options()}


@app.get("/api/weight-options")
async def get_weight_options():
    """Get selectable weight options."""
    return {"success": True, "weight_options": weight_options()}


# Search cache endpoints
@app.get("/api/search/cache/stats")
async def get_cache_stats():
    """Get search cache statistics."""
    return {
        "cache_hit_rate": product_search_service.get_cache_hit_rate(),
        "cache_hits": product_search_service.cache_hit_count,
        "cache_misses": product_search_service.cache_miss_count,
    }


@app.delete("/api/search/cache")
async def clear_search_cache(principal: Principal = Depends(get_principal)):
    """Clear search cache."""
    principal.require_role(Role.ADMIN)
    success = product_search_service.clear_search_cache()
    return {"success": success, "message": "Search cache cleared"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
