"""S3-backed image storage for product photos."""

import logging
import re
import time
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.config import BLOB_STORE_CONFIG
from src.models.products import ImageUpload, ProductImage
from src.services.errors import DependencyError

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most 1000 keys per call
DELETE_BATCH_SIZE = 1000


def sanitize_category_name(category: str) -> str:
    """Lower-case a category and reduce it to [a-z0-9_] for use in folder names."""
    sanitized = re.sub(r"[^a-z0-9]", "_", (category or "other").lower())
    sanitized = re.sub(r"_+", "_", sanitized).strip("_")
    return sanitized or "other"


class S3BlobStore:
    def __init__(self):
        self.config = BLOB_STORE_CONFIG
        self.bucket = self.config["bucket"]
        self.client = boto3.client(
            "s3",
            region_name=self.config["region"],
            aws_access_key_id=self.config["aws_access_key_id"],
            aws_secret_access_key=self.config["aws_secret_access_key"],
        )

    def _folder_for(self, category: str) -> str:
        return f"{self.config['folder_prefix']}/products/{sanitize_category_name(category)}"

    def _public_url(self, key: str) -> str:
        base_url = self.config["public_base_url"]
        if base_url:
            return f"{base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.config['region']}.amazonaws.com/{key}"

    def upload_image(self, image: ImageUpload, category: str) -> ProductImage:
        """Upload one image and return its stored descriptor."""
        folder = self._folder_for(category)
        storage_id = f"{folder}/{sanitize_category_name(category)}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"
        self.client.put_object(
            Bucket=self.bucket,
            Key=storage_id,
            Body=image.content,
            ContentType=image.content_type,
        )
        return ProductImage(
            url=self._public_url(storage_id),
            storage_id=storage_id,
            folder=folder,
            original_name=image.filename,
            size=len(image.content),
            format=image.content_type.split("/")[-1].replace("jpg", "jpeg"),
        )

    def upload_many(self, images: list[ImageUpload], category: str) -> list[ProductImage]:
        """
        Upload every image or none of them.

        All uploads are attempted; if any fail, the ones that succeeded are deleted
        again before a DependencyError is raised.
        """
        uploaded: list[ProductImage] = []
        failed: list[str] = []
        for image in images:
            try:
                uploaded.append(self.upload_image(image, category))
            except (BotoCoreError, ClientError) as e:
                logger.error(f"Failed to upload {image.filename}: {e}")
                failed.append(image.filename)

        if failed:
            if uploaded:
                logger.info("Cleaning up successful uploads due to partial failure...")
                try:
                    self.delete_many([img.storage_id for img in uploaded])
                except DependencyError as e:
                    logger.warning(f"Cleanup after failed upload did not complete: {e}")
            raise DependencyError(f"Failed to upload {len(failed)} out of {len(images)} images")

        logger.info(f"Uploaded {len(uploaded)} images to {self._folder_for(category)}")
        return uploaded

    def delete_many(self, storage_ids: list[str]) -> int:
        """Delete stored images by id. Returns the number of objects S3 reported deleted."""
        deleted = 0
        for start in range(0, len(storage_ids), DELETE_BATCH_SIZE):
            batch = storage_ids[start : start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": False},
                )
            except (BotoCoreError, ClientError) as e:
                logger.error(f"Error deleting images from S3: {e}")
                raise DependencyError(f"Failed to delete images: {e}") from e
            if response.get("Errors"):
                raise DependencyError(f"Failed to delete {len(response['Errors'])} images")
            deleted += len(response.get("Deleted", []))
        return deleted


# Singleton instance
blob_store = S3BlobStore()
