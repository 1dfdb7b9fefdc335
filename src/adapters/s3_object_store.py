"""S3-compatible object store adapter (boto3)."""

from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.config.logging_config import get_logger
from src.domain.exceptions import ArchiveError, StoreUnavailableError
from src.domain.models import StoredObject

logger = get_logger(__name__)


def create_s3_client(
    *,
    region: str,
    endpoint_url: str | None,
    access_key: str,
    secret_key: str,
    verify_tls: bool = True,
) -> Any:
    """Create a boto3 S3 client for an S3-compatible endpoint.

    Path-style addressing is forced since most non-AWS providers do not
    serve virtual-hosted bucket names.
    """
    return boto3.client(
        "s3",
        region_name=region,
        endpoint_url=endpoint_url or None,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        verify=verify_tls,
        config=Config(s3={"addressing_style": "path"}),
    )


class S3ObjectStore:
    """Bucket access used by the ingestion cycle."""

    def __init__(self, bucket: str, client: Any) -> None:
        """Initialize store.

        Args:
            bucket: Bucket name
            client: boto3 S3 client (or a stub with the same methods)
        """
        if not bucket:
            raise ValueError("bucket must not be empty")
        self._bucket = bucket
        self._client = client

    @property
    def bucket(self) -> str:
        return self._bucket

    def list_objects(self, prefix: str) -> list[StoredObject]:
        """List every object under ``prefix`` following continuation tokens.

        Raises:
            StoreUnavailableError: On listing failure
        """
        objects: list[StoredObject] = []
        params: dict[str, Any] = {"Bucket": self._bucket, "Prefix": prefix}

        while True:
            try:
                response = self._client.list_objects_v2(**params)
            except (BotoCoreError, ClientError) as e:
                raise StoreUnavailableError(
                    f"Failed to list objects under {prefix!r}: {e}"
                ) from e

            for item in response.get("Contents", []):
                key = item["Key"]
                # Directory placeholders carry no event
                if key.endswith("/"):
                    continue
                objects.append(
                    StoredObject(
                        key=key,
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified"),
                    )
                )

            if not response.get("IsTruncated"):
                break
            params["ContinuationToken"] = response["NextContinuationToken"]

        logger.debug("objects_listed", prefix=prefix, count=len(objects))
        return objects

    def get_object(self, key: str) -> bytes:
        """Fetch an object's payload.

        Raises:
            StoreUnavailableError: On fetch failure
        """
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        except (BotoCoreError, ClientError) as e:
            raise StoreUnavailableError(f"Failed to get object {key}: {e}") from e

    def copy_object(self, src_key: str, dst_key: str) -> None:
        self._client.copy_object(
            Bucket=self._bucket,
            CopySource={"Bucket": self._bucket, "Key": src_key},
            Key=dst_key,
        )

    def delete_object(self, key: str) -> None:
        self._client.delete_object(Bucket=self._bucket, Key=key)

    def move_object(self, src_key: str, dst_key: str) -> None:
        """Copy an object to ``dst_key`` and delete the original.

        Raises:
            ArchiveError: If either step fails
        """
        try:
            self.copy_object(src_key, dst_key)
        except (BotoCoreError, ClientError) as e:
            raise ArchiveError(f"Failed to copy {src_key} to {dst_key}: {e}") from e

        try:
            self.delete_object(src_key)
        except (BotoCoreError, ClientError) as e:
            raise ArchiveError(f"Failed to delete {src_key}: {e}") from e

        logger.info("object_moved", src_key=src_key, dst_key=dst_key)
