"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Storefront Catalog API"
    app_version: str = "1.0.0"

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "storefront_catalog"
    mongo_transactions: bool = True  # requires a replica set

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None
    cache_ttl: int = 3600

    # S3 image storage
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "eu-central-1"
    aws_s3_bucket_name: str = "storefront-product-images"
    image_folder_prefix: str = "storefront"
    image_public_base_url: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

MONGO_CONFIG = {
    "uri": settings.mongo_uri,
    "database": settings.mongo_database,
    "transactions": settings.mongo_transactions,
}

REDIS_CONFIG = {
    "host": settings.redis_host,
    "port": settings.redis_port,
    "db": settings.redis_db,
    "password": settings.redis_password,
}

BLOB_STORE_CONFIG = {
    "aws_access_key_id": settings.aws_access_key_id,
    "aws_secret_access_key": settings.aws_secret_access_key,
    "region": settings.aws_region,
    "bucket": settings.aws_s3_bucket_name,
    "folder_prefix": settings.image_folder_prefix,
    "public_base_url": settings.image_public_base_url,
}

CACHE_TTL = settings.cache_ttl

# Catalog limits
MIN_PRODUCT_IMAGES = 3
MAX_PRODUCT_IMAGES = 20
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
BULK_CREATE_LIMIT = 50
BULK_DELETE_LIMIT = 100
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
