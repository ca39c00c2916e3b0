# messaging/infrastructure/blob_storage.py
import asyncio
import logging
import time
from dataclasses import dataclass

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from messaging.config import AppConfig
from messaging.domain.exceptions import TransientIOError


@dataclass(frozen=True)
class StoredBlob:
    key: str
    url: str
    size: int


class S3BlobStorage:
    """Stores message attachments in an S3 compatible bucket.

    boto3 is synchronous, every call runs in a worker thread so the event
    loop is never blocked by a slow upload.
    """

    def __init__(self, config: AppConfig, logger: logging.Logger, client=None):
        self.bucket_name = config.S3_BUCKET_NAME
        self.endpoint_url = config.S3_ENDPOINT_URL
        self.region = config.S3_REGION
        self.logger = logger
        self.s3_client = client or boto3.client(
            "s3",
            endpoint_url=config.S3_ENDPOINT_URL,
            aws_access_key_id=config.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
            region_name=config.S3_REGION,
        )

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        filename = filename.replace("/", "_").replace("\\", "_").replace("\x00", "")
        return filename.strip() or "attachment"

    def object_key(self, conversation_id: str, filename: str) -> str:
        millis = int(time.time() * 1000)
        return f"messages/{conversation_id}/{millis}_{self.sanitize_filename(filename)}"

    def public_url(self, key: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def upload(
        self,
        conversation_id: str,
        filename: str,
        data: bytes,
        content_type: str,
        uploaded_by: str,
    ) -> StoredBlob:
        key = self.object_key(conversation_id, filename)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={
                    "conversation_id": conversation_id,
                    "uploaded_by": uploaded_by,
                },
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Failed to upload {key} to {self.bucket_name}: {e!s}")
            raise TransientIOError("Failed to upload attachment", key=key) from e

        self.logger.info(f"Uploaded attachment {key} ({len(data)} bytes)")
        return StoredBlob(key=key, url=self.public_url(key), size=len(data))

