"""
Init file for the Pydantic models.
"""

from .adopted_products import AdoptedProductUpdate, AdoptRequest, StockStatus
from .products import ImageUpload, ProductCategory, ProductCreate, ProductImage, ProductUpdate
from .users import Principal, Role
from .variants import CustomWeight, CustomWeightUnit, StandardWeight, WeightSelection

__all__ = [
    "AdoptRequest",
    "AdoptedProductUpdate",
    "CustomWeight",
    "CustomWeightUnit",
    "ImageUpload",
    "Principal",
    "ProductCategory",
    "ProductCreate",
    "ProductImage",
    "ProductUpdate",
    "Role",
    "StandardWeight",
    "StockStatus",
    "WeightSelection",
]
