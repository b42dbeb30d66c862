import logging
import os
import uuid

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


def _object_name(filename, prefix):
    extension = filename.rsplit('.', 1)[1].lower() if '.' in filename else 'bin'
    return f"{prefix}/{uuid.uuid4().hex}.{extension}"


class LocalStorage:
    """Keeps files under UPLOAD_FOLDER; they are served back from /uploads/<path>."""

    def __init__(self, root, base_url):
        self.root = root
        self.base_url = base_url.rstrip('/')

    def upload(self, data, filename, content_type=None, prefix='users'):
        key = _object_name(filename, prefix)
        path = os.path.join(self.root, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
        return f"{self.base_url}/uploads/{key}"

    def delete(self, url):
        marker = f"{self.base_url}/uploads/"
        if not url.startswith(marker):
            return
        path = os.path.join(self.root, url[len(marker):])
        if os.path.exists(path):
            os.unlink(path)


class S3Storage:
    def __init__(self, bucket, region, access_key, secret_key):
        self.bucket = bucket
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key

    def _client(self):
        return boto3.client(
            's3',
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=BotoConfig(connect_timeout=5, read_timeout=10, retries={'max_attempts': 3}),
        )

    @property
    def base_url(self):
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"

    def upload(self, data, filename, content_type=None, prefix='users'):
        key = _object_name(filename, prefix)
        try:
            self._client().put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or 'application/octet-stream',
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload %s to S3: %s", key, e)
            raise StorageError(f"Failed to upload file: {e}") from e
        return f"{self.base_url}/{key}"

    def delete(self, url):
        marker = f"{self.base_url}/"
        if not url.startswith(marker):
            return
        key = url[len(marker):]
        try:
            self._client().delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to delete %s from S3: %s", key, e)
            raise StorageError(f"Failed to delete file: {e}") from e


def storage_from_config(config):
    backend = (config.get('STORAGE_BACKEND') or 'local').strip().lower()
    if backend == 's3':
        return S3Storage(
            bucket=config.get('AWS_BUCKET_NAME'),
            region=config.get('AWS_REGION'),
            access_key=config.get('AWS_ACCESS_KEY'),
            secret_key=config.get('AWS_SECRET_KEY'),
        )
    return LocalStorage(root=config['UPLOAD_FOLDER'], base_url=config['BASE_URL'])
