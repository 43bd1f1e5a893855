"""
Pydantic models for the MongoDB 'admin_products' collection and its request payloads.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.services.discount import DiscountType
from src.services.errors import ValidationError
from src.utils.serialization import to_naive_utc


class ProductCategory(str, Enum):
    VEGETABLES_FRUITS = "vegetables & fruits"
    ATTA_RICE_DAL = "atta, rice & dal"
    OIL_GHEE = "oil & ghee"
    SPICES_HERBS = "spices & herbs"
    DAIRY_BREAD_EGGS = "dairy, bread & eggs"
    BAKERY_BISCUITS = "bakery & biscuits"
    DRY_FRUITS_CEREALS = "dry fruits & cereals"
    CHICKEN_MEAT_FISH = "chicken , meat & fish"
    BEVERAGES = "beverages & soft drinks"
    HOUSEHOLD_CLEANING = "household & cleaning"
    PERSONAL_CARE = "personal care"
    BABY_CARE = "baby care & diapers"
    PET_CARE = "pet care"
    OTHER = "other"


VALID_CATEGORIES = frozenset(c.value for c in ProductCategory)

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
BRAND_MAX_LENGTH = 50

# Update fields that may not be cleared with an explicit null
NON_NULLABLE_UPDATE_FIELDS = (
    "name",
    "description",
    "price",
    "available_weights",
    "custom_weights",
    "discount_type",
    "discount_value",
    "tags",
    "is_active",
)


class ProductImage(BaseModel):
    url: str
    storage_id: str
    folder: str
    original_name: str | None = None
    size: int | None = None
    format: str | None = None


class ImageUpload(BaseModel):
    """An image file received from the client, before it is stored."""

    filename: str
    content: bytes
    content_type: str


def _split_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _parse_json_list(value: Any) -> Any:
    # Multipart forms send nested lists as JSON strings
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("Invalid custom weights format")
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("Custom weights must be an array")
    return value


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    description: str = ""
    price: float | None = None
    category: str = ""
    brand: str | None = None
    available_weights: list[str] = Field(default_factory=list)
    custom_weights: list[Any] = Field(default_factory=list)
    discount_type: DiscountType = DiscountType.NONE
    discount_value: float = 0
    discount_start_date: datetime | None = None
    discount_end_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("available_weights", mode="before")
    @classmethod
    def _weights_as_list(cls, value):
        if isinstance(value, str):
            return [value]
        return value or []

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_list(cls, value):
        return _split_list(value)

    @field_validator("custom_weights", mode="before")
    @classmethod
    def _custom_weights_as_list(cls, value):
        return _parse_json_list(value)

    @field_validator("discount_start_date", "discount_end_date")
    @classmethod
    def _naive_dates(cls, value):
        return to_naive_utc(value)


class ProductUpdate(BaseModel):
    """Fields an admin may change after creation. Anything else in the request is ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = None
    price: float | None = Field(None, ge=0)
    brand: str | None = None
    available_weights: list[str] | None = None
    custom_weights: list[Any] | None = None
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(None, ge=0)
    discount_start_date: datetime | None = None
    discount_end_date: datetime | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("available_weights", mode="before")
    @classmethod
    def _weights_as_list(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_list(cls, value):
        if value is None:
            return None
        return _split_list(value)

    @field_validator("custom_weights", mode="before")
    @classmethod
    def _custom_weights_as_list(cls, value):
        if value is None:
            return None
        return _parse_json_list(value)

    @field_validator("discount_start_date", "discount_end_date")
    @classmethod
    def _naive_dates(cls, value):
        return to_naive_utc(value)


def build_search_keywords(name: str | None, brand: str | None, category: str | None) -> list[str]:
    """Lower-cased name and brand words plus the category, de-duplicated in order."""
    keywords = []
    if name:
        keywords.extend(name.lower().split())
    if brand:
        keywords.extend(brand.lower().split())
    if category:
        keywords.append(category.lower())
    return list(dict.fromkeys(k for k in keywords if k))


def format_validation_errors(exc) -> list[str]:
    """Flatten a pydantic ValidationError into readable messages."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_fields(model_cls, data):
    """
    Validate a request body field by field.

    Fields pydantic rejects are reported and left out, and the rest are still validated,
    so business-rule checks can run on them and add their own messages.

    Returns:
        Tuple of (model built from the accepted fields, field error messages)
    """
    if isinstance(data, model_cls):
        return data, []
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model_cls.model_validate(data), []
    except PydanticValidationError as e:
        errors = format_validation_errors(e)
        rejected = {error["loc"][0] for error in e.errors() if error.get("loc")}
    accepted = {key: value for key, value in data.items() if key not in rejected}
    return model_cls.model_validate(accepted), errors


def category_options() -> list[dict[str, str]]:
    return [{"value": c.value, "label": c.value.replace(" ,", ",").title()} for c in ProductCategory]
