"""Cloud Storage gateway: bucket bootstrap, image upload and public ACLs."""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import httplib2
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from parkcam.config import Settings
from parkcam.errors import StorageError
from parkcam.logging import log_upload_success, log_visibility_set, storage_logger

logger = storage_logger()

# Entity and role granted on every uploaded object
PUBLIC_ENTITY = "allUsers"
PUBLIC_ROLE = "READER"

# Errors a storage call can raise besides API error responses
_TRANSPORT_ERRORS = (httplib2.HttpLib2Error, OSError)


@dataclass(frozen=True)
class UploadedImage:
    """An object created in the bucket and the URL it is served from."""

    object_name: str
    media_link: str


def build_storage_service(credentials: Any) -> Resource:
    """Build a Cloud Storage JSON API v1 client.

    Args:
        credentials: google-auth credentials with a devstorage scope

    Returns:
        Storage API service resource.
    """
    return build("storage", "v1", credentials=credentials, cache_discovery=False)


def _status_of(error: Exception) -> int | None:
    if isinstance(error, HttpError):
        return error.resp.status
    return None


class StorageGateway:
    """Narrow wrapper over the storage API used by the poll loop.

    Every failure is re-raised as StorageError. Making an object public is
    retried with exponential backoff before giving up.
    """

    def __init__(
        self,
        service: Resource,
        config: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the gateway.

        Args:
            service: Storage API service (see build_storage_service)
            config: Settings with bucket, project and ACL retry count
            sleep: Sleep function used between ACL attempts
        """
        self._service = service
        self.bucket_name = config.bucket_name
        self.project_id = config.project_id
        self.acl_max_attempts = config.acl_max_attempts
        self._sleep = sleep

    def bucket_exists(self) -> bool:
        """Return True if the bucket can be fetched with these credentials."""
        try:
            self._service.buckets().get(bucket=self.bucket_name).execute()
            return True
        except (HttpError, *_TRANSPORT_ERRORS) as e:
            logger.debug(
                "Bucket lookup failed",
                extra={"bucket": self.bucket_name, "status": _status_of(e), "error": str(e)},
            )
            return False

    def ensure_bucket(self) -> bool:
        """Create the bucket unless it already exists.

        Returns:
            True if the bucket was created, False if it already existed

        Raises:
            StorageError: If the bucket is missing and cannot be created
        """
        if self.bucket_exists():
            logger.info(
                "Bucket already exists - skipping buckets.insert call",
                extra={"event": "bucket_exists", "bucket": self.bucket_name},
            )
            return False

        try:
            res = (
                self._service.buckets()
                .insert(project=self.project_id, body={"name": self.bucket_name})
                .execute()
            )
        except (HttpError, *_TRANSPORT_ERRORS) as e:
            raise StorageError(
                f"Failed creating bucket {self.bucket_name}: {e}", status=_status_of(e)
            ) from e

        logger.info(
            "Created bucket",
            extra={
                "event": "bucket_created",
                "bucket": res.get("name", self.bucket_name),
                "self_link": res.get("selfLink"),
            },
        )
        return True

    def upload_image(self, path: Path, object_name: str) -> UploadedImage:
        """Upload a local JPEG as a new object.

        Args:
            path: Local image file
            object_name: Name of the object to create

        Returns:
            UploadedImage carrying the object's media link

        Raises:
            StorageError: If the file cannot be read or the insert fails
        """
        try:
            fh = open(path, "rb")
        except OSError as e:
            raise StorageError(f"Error opening {path}: {e}") from e

        with fh:
            media = MediaIoBaseUpload(fh, mimetype="image/jpeg")
            try:
                res = (
                    self._service.objects()
                    .insert(bucket=self.bucket_name, name=object_name, media_body=media)
                    .execute()
                )
            except HttpError as e:
                raise StorageError(f"Objects.Insert failed: {e}", status=e.resp.status) from e
            except _TRANSPORT_ERRORS as e:
                raise StorageError(f"Objects.Insert failed: {e}") from e

        media_link = res.get("mediaLink")
        if not media_link:
            raise StorageError(f"Objects.Insert returned no mediaLink for {object_name}")

        image = UploadedImage(object_name=res.get("name", object_name), media_link=media_link)
        log_upload_success(logger, self.bucket_name, image.object_name, image.media_link)
        return image

    def make_public(self, object_name: str) -> dict:
        """Grant allUsers read access to an object.

        Tries up to acl_max_attempts times, sleeping 2**attempt seconds
        between attempts. Client errors other than 429 are not retried.

        Returns:
            The created ObjectAccessControl resource

        Raises:
            StorageError: If every attempt failed. The object stays uploaded.
        """
        body = {
            "bucket": self.bucket_name,
            "object": object_name,
            "entity": PUBLIC_ENTITY,
            "role": PUBLIC_ROLE,
        }
        last_error: Exception | None = None
        attempts = 0

        for attempt in range(1, self.acl_max_attempts + 1):
            attempts = attempt
            try:
                res = (
                    self._service.objectAccessControls()
                    .insert(bucket=self.bucket_name, object=object_name, body=body)
                    .execute()
                )
                log_visibility_set(logger, self.bucket_name, object_name, attempt)
                return res
            except (HttpError, *_TRANSPORT_ERRORS) as e:
                last_error = e
                logger.warning(
                    "ACL insert failed",
                    extra={
                        "event": "acl_attempt_failed",
                        "object_name": object_name,
                        "attempt": attempt,
                        "status": _status_of(e),
                        "error": str(e),
                    },
                )
                # 4xx errors - don't retry (client error), except rate limiting
                status = _status_of(e)
                if status is not None and 400 <= status < 500 and status != 429:
                    break

            if attempt < self.acl_max_attempts:
                self._sleep(2**attempt)

        logger.error(
            "Object uploaded but could not be made public",
            extra={
                "event": "acl_failed",
                "bucket": self.bucket_name,
                "object_name": object_name,
                "attempts": attempts,
            },
        )
        raise StorageError(
            f"Failed to insert ACL for {self.bucket_name}/{object_name}: {last_error}",
            status=_status_of(last_error) if last_error else None,
        )
