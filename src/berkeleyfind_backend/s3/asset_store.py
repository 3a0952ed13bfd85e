import base64
import binascii
import logging
import re
import typing

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from berkeleyfind_backend.utils.base_types import AssetPublicId, AssetUrl
from berkeleyfind_backend.utils.s3_utils import bucket_name_and_key_to_http_url, new_asset_key

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

DATA_URL_PATTERN = re.compile(r"^data:(?P<content_type>[\w.+-]+/[\w.+-]+)?(;[\w-]+=[^;,]+)*;base64,(?P<data>.*)$", re.S)


class AssetStoreError(Exception):
    pass


class UploadedAsset(typing.NamedTuple):
    secure_url: AssetUrl
    public_id: AssetPublicId


def decode_data_url(file_data: str) -> tuple[bytes, str]:
    """
    Decodes a base64 data URL (as produced by the browser's FileReader.readAsDataURL).

    :return: (raw bytes, content type)
    :raises AssetStoreError: If the payload is not a base64 data URL.
    """
    match = DATA_URL_PATTERN.match(file_data)
    if not match:
        raise AssetStoreError("Asset payload is not a base64 data URL")
    try:
        contents = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AssetStoreError("Asset payload is not valid base64") from e
    return contents, match.group("content_type") or "application/octet-stream"


class AssetStore:
    """
    Hosts user-uploaded assets (profile images) in a public-read S3 bucket.

    An asset's public id is its object key; its URL is the bucket's virtual-hosted URL for that key.
    """

    def __init__(self, bucket_name: str, region: str) -> None:
        self.client = boto3.client("s3", region_name=region)
        self.bucket_name = bucket_name
        self.region = region

    def upload(self, file_data: str, folder: str) -> UploadedAsset:
        """
        Stores a data-URL encoded file under `folder`.

        :raises AssetStoreError: On a malformed payload or an S3 failure.
        """
        contents, content_type = decode_data_url(file_data)
        key = new_asset_key(folder, content_type)

        _LOGGER.info(f"Uploading {len(contents)} bytes to s3://{self.bucket_name}/{key}")
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=contents,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            _LOGGER.error(f"Failed to upload asset {key}: {e}", exc_info=True)
            raise AssetStoreError(f"Failed to upload asset {key}") from e

        return UploadedAsset(
            secure_url=AssetUrl(bucket_name_and_key_to_http_url(self.region, self.bucket_name, key)),
            public_id=AssetPublicId(key),
        )

    def destroy(self, public_id: AssetPublicId) -> None:
        """
        Deletes a previously uploaded asset.

        :raises AssetStoreError: On an S3 failure.
        """
        _LOGGER.info(f"Deleting s3://{self.bucket_name}/{public_id}")
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=public_id)
        except (ClientError, BotoCoreError) as e:
            _LOGGER.error(f"Failed to delete asset {public_id}: {e}", exc_info=True)
            raise AssetStoreError(f"Failed to delete asset {public_id}") from e
