"""Storage module for Cloud Storage uploads."""

from parkcam.storage.gateway import StorageGateway, UploadedImage, build_storage_service
from parkcam.storage.naming import ObjectNamer

__all__ = ["ObjectNamer", "StorageGateway", "UploadedImage", "build_storage_service"]
