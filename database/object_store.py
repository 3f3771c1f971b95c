"""JSON documents in an S3-compatible bucket (AWS S3, Cloudflare R2, MinIO).

boto3 is synchronous, so every call is pushed onto a worker thread.
"""

import asyncio
import json
import os
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from database.exceptions import StorageError

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def s3_client_from_env():
    """Build an S3 client from S3_ENDPOINT / S3_REGION / S3_ACCESS_KEY / S3_SECRET_KEY."""
    endpoint = os.getenv("S3_ENDPOINT")
    region = os.getenv("S3_REGION", "auto")
    access_key = os.getenv("S3_ACCESS_KEY")
    secret_key = os.getenv("S3_SECRET_KEY")
    force_path_style = _bool_env("S3_FORCE_PATH_STYLE", False)

    session_kwargs: Dict[str, Any] = {}
    if access_key and secret_key:
        session_kwargs["aws_access_key_id"] = access_key
        session_kwargs["aws_secret_access_key"] = secret_key

    client_kwargs: Dict[str, Any] = {}
    if endpoint:
        client_kwargs["endpoint_url"] = endpoint

    addressing = {"addressing_style": "path" if force_path_style else "auto"}
    return boto3.client(
        "s3",
        region_name=region,
        config=Config(signature_version="s3v4", s3=addressing),
        **session_kwargs,
        **client_kwargs,
    )


def to_json(payload: Any) -> str:
    """Serialize a pydantic model, a list of models, or plain JSON data."""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    if isinstance(payload, list) and payload and isinstance(payload[0], BaseModel):
        return json.dumps([p.model_dump(mode="json") for p in payload])
    return json.dumps(payload)


class ObjectStore:
    """Async JSON get/put/delete over a boto3 S3 client."""

    def __init__(self, client, bucket: str):
        if not bucket:
            raise StorageError("S3_BUCKET is not configured")
        self._client = client
        self.bucket = bucket

    async def get_json(self, key: str) -> Optional[Any]:
        """Decoded document at `key`, or None when the key does not exist."""
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
            body = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise StorageError(f"S3 get {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"S3 get {key} failed: {e}") from e

        try:
            return json.loads(body)
        except ValueError as e:
            raise StorageError(f"S3 object {key} is not valid JSON: {e}") from e

    async def put_json(self, key: str, payload: Any) -> None:
        body = to_json(payload).encode("utf-8")
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 put {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=key
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 delete {key} failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket)
            return True
        except (ClientError, BotoCoreError):
            return False
