"""VoxArena Cloudflare R2 avatar storage backend.

R2 speaks the S3 API, so objects are written with a boto3 S3 client
pointed at the account's R2 endpoint.

Environment Variables:
    R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, R2_BUCKET:
        Credentials and target bucket (all required)
    R2_PUBLIC_BASE_URL: Public URL prefix that serves the bucket (required)
"""

from __future__ import annotations

import logging
import os
from typing import Any

from voxarena.storage.avatar_store import AvatarStore
from voxarena.storage.errors import StorageBackendError, StorageConfigError

logger = logging.getLogger(__name__)

R2_ENV_VARS = (
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_BUCKET",
    "R2_PUBLIC_BASE_URL",
)


class R2AvatarStore(AvatarStore):
    """Avatar storage on Cloudflare R2."""

    def __init__(
        self,
        *,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        public_base_url: str,
        client: Any = None,
    ) -> None:
        """Initialize the store.

        Args:
            account_id: Cloudflare account id (selects the R2 endpoint).
            access_key_id: R2 access key id.
            secret_access_key: R2 secret access key.
            bucket: Target bucket.
            public_base_url: Public URL prefix that serves the bucket.
            client: Pre-built S3 client; built lazily when None.
        """
        self._account_id = account_id
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._client = client

    @classmethod
    def from_env(cls) -> R2AvatarStore:
        """Build the store from R2_* environment variables.

        Raises:
            StorageConfigError: If any required variable is missing.
        """
        values = {name: os.environ.get(name, "").strip() for name in R2_ENV_VARS}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise StorageConfigError(f"Missing R2 config. Required: {', '.join(R2_ENV_VARS)}")
        return cls(
            account_id=values["R2_ACCOUNT_ID"],
            access_key_id=values["R2_ACCESS_KEY_ID"],
            secret_access_key=values["R2_SECRET_ACCESS_KEY"],
            bucket=values["R2_BUCKET"],
            public_base_url=values["R2_PUBLIC_BASE_URL"],
        )

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "r2"

    @property
    def client(self) -> Any:
        """Lazily created boto3 S3 client for the R2 endpoint."""
        if self._client is None:
            import boto3
            from botocore.config import Config

            self._client = boto3.client(
                "s3",
                endpoint_url=f"https://{self._account_id}.r2.cloudflarestorage.com",
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                region_name="auto",
                config=Config(s3={"addressing_style": "path"}),
            )
        return self._client

    def put(self, key: str, data: bytes, *, content_type: str = "image/png") -> str:
        """Upload ``data`` and return ``{public_base_url}/{key}``."""
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageBackendError(
                message=f"R2 upload failed: {e}", key=key, cause=e
            ) from e

        url = f"{self._public_base_url}/{key}"
        logger.info("Uploaded avatar %s to R2 bucket %s", key, self._bucket)
        return url
