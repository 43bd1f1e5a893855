"""Tests for the stored weight cleanup script."""

from unittest.mock import patch

from bson import ObjectId
from pymongo.errors import PyMongoError

from src.loaders.weight_cleanup import WeightCleanup


class TestWeightCleanup:
    def test_run_strips_custom_token(self):
        first, second = ObjectId(), ObjectId()
        with patch("src.loaders.weight_cleanup.mongo_client") as mock_mongo:
            collection = mock_mongo.get_collection.return_value
            collection.find.return_value = [
                {"_id": first, "name": "Eggs", "available_weights": ["custom"]},
                {"_id": second, "name": "Ghee", "available_weights": ["500ml", "custom", "1ltr"]},
            ]
            collection.update_one.side_effect = [None, PyMongoError("write failed")]

            summary = WeightCleanup().run()

        assert summary == {"updated": 1, "failed": 1, "total_processed": 2}
        first_update = collection.update_one.call_args_list[0][0]
        assert first_update[0] == {"_id": first}
        assert first_update[1]["$set"]["available_weights"] == []
        second_update = collection.update_one.call_args_list[1][0]
        assert second_update[1]["$set"]["available_weights"] == ["500ml", "1ltr"]
