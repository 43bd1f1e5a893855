"""Tests for AdminProductService."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from src.models.products import ImageUpload, ProductImage
from src.models.users import Principal, Role
from src.services.admin_product_service import AdminProductService, present_product
from src.services.errors import AuthorizationError, DependencyError, NotFoundError, ValidationError


def make_images(count=3, content_type="image/png"):
    return [ImageUpload(filename=f"photo{i}.png", content=b"\x89PNG", content_type=content_type) for i in range(count)]


def stored_images(count=3):
    return [
        ProductImage(
            url=f"https://cdn.example.com/storefront/products/oil_ghee/img{i}",
            storage_id=f"storefront/products/oil_ghee/img{i}",
            folder="storefront/products/oil_ghee",
            original_name=f"photo{i}.png",
            size=4,
            format="png",
        )
        for i in range(count)
    ]


class TestAdminProductService:
    @pytest.fixture
    def service(self):
        return AdminProductService()

    @pytest.fixture
    def admin(self):
        return Principal(id=str(ObjectId()), role=Role.ADMIN)

    @pytest.fixture
    def owner(self):
        return Principal(id=str(ObjectId()), role=Role.BUSINESS_OWNER)

    @pytest.fixture
    def collection(self):
        return MagicMock()

    @pytest.fixture
    def mock_mongo(self, collection):
        with patch("src.services.admin_product_service.mongo_client") as mock_mongo:
            mock_mongo.get_collection.return_value = collection
            yield mock_mongo

    @pytest.fixture
    def mock_blob_store(self):
        with patch("src.services.admin_product_service.blob_store") as mock_blob_store:
            yield mock_blob_store

    @pytest.fixture(autouse=True)
    def mock_search_service(self):
        with patch("src.services.admin_product_service.product_search_service") as mock_search:
            yield mock_search

    @pytest.fixture
    def payload(self):
        return {
            "name": "  Mustard Oil ",
            "description": "Cold pressed",
            "price": 200,
            "category": "oil & ghee",
            "brand": "Dhara",
            "available_weights": ["500ml", "1ltr", "custom"],
            "custom_weights": [{"value": "5", "unit": "ltr", "description": "Family can"}],
            "discount_type": "percentage",
            "discount_value": 10,
            "tags": "oil, cooking, ",
        }

    @pytest.fixture
    def product(self, admin):
        return {
            "_id": ObjectId(),
            "name": "Mustard Oil",
            "description": "Cold pressed",
            "brand": "Dhara",
            "category": "oil & ghee",
            "price": 100.0,
            "discount_type": "percentage",
            "discount_value": 10.0,
            "discounted_price": 90.0,
            "available_weights": ["500ml", "1ltr"],
            "custom_weights": [],
            "images": [img.model_dump() for img in stored_images()],
            "created_by": ObjectId(admin.id),
            "is_active": True,
            "adoption_count": 4,
        }

    def test_create_product(self, service, admin, payload, collection, mock_mongo, mock_blob_store, mock_search_service):
        """Test product creation stores images, weights and the discounted price."""
        mock_blob_store.upload_many.return_value = stored_images()
        inserted_id = ObjectId()
        collection.insert_one.return_value.inserted_id = inserted_id

        result = service.create_product(admin, payload, make_images())

        document = collection.insert_one.call_args[0][0]
        assert document["name"] == "Mustard Oil"
        assert document["available_weights"] == ["500ml", "1ltr"]
        assert document["custom_weights"] == [{"value": "5", "unit": "ltr", "description": "Family can"}]
        assert document["discounted_price"] == 180
        assert document["tags"] == ["oil", "cooking"]
        assert document["search_keywords"] == ["mustard", "oil", "dhara", "oil & ghee"]
        assert document["adoption_count"] == 0
        assert document["created_by"] == ObjectId(admin.id)
        assert len(document["images"]) == 3

        assert result["id"] == str(inserted_id)
        assert result["created_by"] == admin.id
        mock_blob_store.upload_many.assert_called_once()
        mock_search_service.clear_search_cache.assert_called_once()

    def test_create_product_requires_admin(self, service, owner, payload, mock_mongo, mock_blob_store):
        """Test business owners cannot create admin products."""
        with pytest.raises(AuthorizationError):
            service.create_product(owner, payload, make_images())

        mock_blob_store.upload_many.assert_not_called()

    def test_create_product_custom_without_details(self, service, admin, payload, collection, mock_mongo, mock_blob_store):
        """Test 'custom' without custom weights is rejected before anything is stored."""
        payload["available_weights"] = ["custom"]
        payload["custom_weights"] = []

        with pytest.raises(ValidationError) as exc_info:
            service.create_product(admin, payload, make_images())

        assert "Custom weight details are required when 'custom' is selected" in exc_info.value.errors
        mock_blob_store.upload_many.assert_not_called()
        collection.insert_one.assert_not_called()

    def test_create_product_reports_all_errors(self, service, admin, payload, mock_mongo, mock_blob_store):
        """Test field, weight, discount and image problems are reported together."""
        payload["category"] = "electronics"
        payload["available_weights"] = ["3lb"]
        payload["discount_value"] = 150

        with pytest.raises(ValidationError) as exc_info:
            service.create_product(admin, payload, make_images(2, content_type="image/gif"))

        errors = exc_info.value.errors
        assert "Invalid product category" in errors
        assert "Invalid weight options: 3lb" in errors
        assert "Percentage discount cannot exceed 100%" in errors
        assert "Minimum 3 product images are required" in errors
        assert any("Invalid file type" in error for error in errors)

    def test_create_product_type_and_rule_errors_together(self, service, admin, payload, mock_mongo, mock_blob_store):
        """Test a mistyped field does not hide the business-rule errors of the others."""
        payload["category"] = "nope"
        payload["available_weights"] = ["bogus"]
        payload["discount_type"] = "bogus"

        with pytest.raises(ValidationError) as exc_info:
            service.create_product(admin, payload, make_images(1))

        errors = exc_info.value.errors
        assert any(error.startswith("discount_type:") for error in errors)
        assert "Invalid product category" in errors
        assert "Invalid weight options: bogus" in errors
        assert "Minimum 3 product images are required" in errors

    def test_create_product_missing_required_fields(self, service, admin, mock_mongo, mock_blob_store):
        with pytest.raises(ValidationError) as exc_info:
            service.create_product(admin, {"available_weights": ["1kg"]}, make_images())

        assert "Product name, description, price, and category are required" in exc_info.value.errors

    def test_create_product_upload_failure(self, service, admin, payload, collection, mock_mongo, mock_blob_store):
        """Test a failed upload leaves the database untouched."""
        mock_blob_store.upload_many.side_effect = DependencyError("Failed to upload 1 out of 3 images")

        with pytest.raises(DependencyError):
            service.create_product(admin, payload, make_images())

        collection.insert_one.assert_not_called()

    def test_create_product_insert_failure_removes_images(
        self, service, admin, payload, collection, mock_mongo, mock_blob_store
    ):
        """Test uploaded images are deleted when the product cannot be saved."""
        mock_blob_store.upload_many.return_value = stored_images()
        collection.insert_one.side_effect = PyMongoError("write failed")

        with pytest.raises(PyMongoError):
            service.create_product(admin, payload, make_images())

        mock_blob_store.delete_many.assert_called_once_with([img.storage_id for img in stored_images()])

    def test_bulk_create_isolates_failures(self, service, admin, collection, mock_mongo, mock_search_service):
        """Test an invalid item fails alone and keeps its 1-based index."""
        collection.insert_one.return_value.inserted_id = ObjectId()
        items = [
            {"name": "Basmati Rice", "description": "Long grain", "price": 120, "category": "atta, rice & dal",
             "available_weights": ["1kg", "5kg"]},
            {"name": "Headphones", "description": "Wireless", "price": 999, "category": "electronics",
             "available_weights": ["1kg"]},
            {"name": "Herbal Shampoo", "description": "Mild", "price": 250, "category": "personal care",
             "available_weights": "200ml", "tags": "hair, herbal"},
        ]

        results = service.create_products_bulk(admin, items)

        assert results["total_processed"] == 3
        assert [entry["index"] for entry in results["successful"]] == [1, 3]
        assert results["failed"] == [{"index": 2, "name": "Headphones", "error": "Invalid product category"}]
        assert collection.insert_one.call_count == 2
        mock_search_service.clear_search_cache.assert_called_once()

    def test_bulk_create_limits(self, service, admin, mock_mongo):
        with pytest.raises(ValidationError):
            service.create_products_bulk(admin, [])

        with pytest.raises(ValidationError) as exc_info:
            service.create_products_bulk(admin, [{"name": "x"}] * 51)

        assert exc_info.value.errors == ["Maximum 50 products can be created at once"]

    def test_get_product(self, service, product, collection, mock_mongo):
        collection.find_one.return_value = product

        result = service.get_product(str(product["_id"]))

        assert result["id"] == str(product["_id"])
        assert result["discount_active"] is True

    def test_get_product_inactive(self, service, product, collection, mock_mongo):
        """Test soft-deleted products are not returned."""
        product["is_active"] = False
        collection.find_one.return_value = product

        with pytest.raises(NotFoundError):
            service.get_product(str(product["_id"]))

    def test_get_product_invalid_id(self, service, collection, mock_mongo):
        with pytest.raises(NotFoundError):
            service.get_product("not-an-object-id")

        collection.find_one.assert_not_called()

    def test_get_custom_weights(self, service, product, collection, mock_mongo):
        product["custom_weights"] = [{"value": "12", "unit": "pieces", "description": ""}]
        collection.find_one.return_value = product

        result = service.get_custom_weights(str(product["_id"]))

        assert result == {"custom_weights": product["custom_weights"], "has_custom_weights": True}

    def test_update_recomputes_discounted_price(self, service, admin, product, collection, mock_mongo, mock_search_service):
        """Test a price change recomputes the discount from the stored settings."""
        collection.find_one.return_value = product
        collection.find_one_and_update.return_value = {**product, "price": 200.0, "discounted_price": 180.0}

        result = service.update_product(admin, str(product["_id"]), {"price": 200})

        changes = collection.find_one_and_update.call_args[0][1]["$set"]
        assert changes["price"] == 200
        assert changes["discounted_price"] == 180
        assert "updated_at" in changes
        assert result["discounted_price"] == 180.0
        mock_search_service.clear_search_cache.assert_called_once()

    def test_update_weights_strips_custom_token(self, service, admin, product, collection, mock_mongo):
        collection.find_one.return_value = product
        collection.find_one_and_update.return_value = product

        service.update_product(
            admin,
            str(product["_id"]),
            {"available_weights": ["1ltr", "custom"], "custom_weights": [{"value": "5", "unit": "bottle"}]},
        )

        changes = collection.find_one_and_update.call_args[0][1]["$set"]
        assert changes["available_weights"] == ["1ltr"]
        assert changes["custom_weights"] == [{"value": "5", "unit": "bottle", "description": ""}]

    def test_update_custom_without_details(self, service, admin, product, collection, mock_mongo):
        collection.find_one.return_value = product

        with pytest.raises(ValidationError):
            service.update_product(admin, str(product["_id"]), {"available_weights": ["custom"]})

        collection.find_one_and_update.assert_not_called()

    def test_update_ignores_non_editable_fields(self, service, admin, product, collection, mock_mongo):
        """Test fields outside the editable set never reach the database."""
        collection.find_one.return_value = product
        collection.find_one_and_update.return_value = product

        service.update_product(
            admin, str(product["_id"]), {"name": "Yellow Mustard Oil", "adoption_count": 99, "category": "other"}
        )

        changes = collection.find_one_and_update.call_args[0][1]["$set"]
        assert "adoption_count" not in changes
        assert "category" not in changes
        assert changes["search_keywords"] == ["yellow", "mustard", "oil", "dhara", "oil & ghee"]

    def test_update_type_and_rule_errors_together(self, service, admin, product, collection, mock_mongo):
        collection.find_one.return_value = product

        with pytest.raises(ValidationError) as exc_info:
            service.update_product(
                admin, str(product["_id"]), {"price": -5, "available_weights": ["bogus"], "name": ""}
            )

        errors = exc_info.value.errors
        assert any(error.startswith("price:") for error in errors)
        assert "Invalid weight options: bogus" in errors
        assert "Product name cannot be empty" in errors
        collection.find_one_and_update.assert_not_called()

    def test_update_rejects_explicit_nulls(self, service, admin, product, collection, mock_mongo):
        """Test nulls on required fields are rejected instead of written."""
        collection.find_one.return_value = product

        with pytest.raises(ValidationError) as exc_info:
            service.update_product(
                admin, str(product["_id"]), {"discount_type": None, "is_active": None, "tags": None}
            )

        assert sorted(exc_info.value.errors) == [
            "discount_type cannot be null",
            "is_active cannot be null",
            "tags cannot be null",
        ]
        collection.find_one_and_update.assert_not_called()

    def test_update_clears_nullable_fields(self, service, admin, product, collection, mock_mongo):
        collection.find_one.return_value = product
        collection.find_one_and_update.return_value = product

        service.update_product(admin, str(product["_id"]), {"brand": None, "discount_end_date": None})

        changes = collection.find_one_and_update.call_args[0][1]["$set"]
        assert changes["brand"] is None
        assert changes["discount_end_date"] is None
        assert changes["discounted_price"] == 90

    def test_update_by_other_user_rejected(self, service, owner, product, collection, mock_mongo):
        collection.find_one.return_value = product

        with pytest.raises(AuthorizationError):
            service.update_product(owner, str(product["_id"]), {"price": 10})

    def test_delete_product_survives_image_failure(self, service, admin, product, collection, mock_mongo, mock_blob_store):
        """Test image deletion failure does not block the soft delete."""
        collection.find_one.return_value = product
        mock_blob_store.delete_many.side_effect = DependencyError("Failed to delete images")

        result = service.delete_product(admin, str(product["_id"]))

        assert result == {"product_id": str(product["_id"]), "name": "Mustard Oil"}
        update = collection.update_one.call_args[0][1]
        assert update["$set"]["is_active"] is False

    def test_bulk_delete(self, service, admin, product, collection, mock_mongo):
        """Test per-id results for found, missing and malformed ids."""
        missing_id = str(ObjectId())
        collection.find_one.side_effect = [product, None]

        results = service.delete_products_bulk(admin, [str(product["_id"]), missing_id, "bad-id"])

        assert results["total_processed"] == 3
        assert [entry["product_id"] for entry in results["successful"]] == [str(product["_id"])]
        assert results["failed"] == [
            {"product_id": missing_id, "error": "Product not found"},
            {"product_id": "bad-id", "error": "Product not found"},
        ]

    def test_bulk_delete_not_creator(self, service, owner, product, collection, mock_mongo):
        collection.find_one.return_value = product

        results = service.delete_products_bulk(owner, [str(product["_id"])])

        assert results["failed"][0]["error"] == "Not authorized to delete this product"
        collection.update_one.assert_not_called()


class TestPresentProduct:
    def test_discount_window_closed(self):
        doc = {
            "_id": ObjectId(),
            "discount_type": "fixed",
            "discount_end_date": datetime(2026, 1, 1),
        }

        assert present_product(doc, now=datetime(2026, 3, 1))["discount_active"] is False

    def test_no_discount(self):
        assert present_product({"_id": ObjectId(), "discount_type": "none"})["discount_active"] is False
