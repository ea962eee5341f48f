from __future__ import annotations
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from fastapi.concurrency import run_in_threadpool

from tracker.storage.object_store import ObjectStore, StoredObject

logger = logging.getLogger("tracker.storage")

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStore(ObjectStore):
    """
    Object store su bucket S3 compatibile (MinIO in locale).
    boto3 è sincrono: ogni chiamata gira nel threadpool.
    """

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: str = "us-east-1",
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    async def put(self, key: str, body: bytes, content_type: Optional[str] = None) -> None:
        params = {"Bucket": self.bucket, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        await run_in_threadpool(self.client.put_object, **params)
        logger.debug("Object stored", extra={"bucket": self.bucket, "key": key, "size": len(body)})

    async def get(self, key: str) -> Optional[StoredObject]:
        try:
            response = await run_in_threadpool(self.client.get_object, Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise
        body = await run_in_threadpool(response["Body"].read)
        return StoredObject(key=key, body=body, content_type=response.get("ContentType"))

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)
        logger.debug("Object deleted", extra={"bucket": self.bucket, "key": key})
