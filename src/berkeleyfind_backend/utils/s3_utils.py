import uuid

CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def new_asset_key(folder: str, content_type: str) -> str:
    """Returns a fresh object key under `folder`, suffixed by the extension for `content_type` when known."""
    return f"{folder}/{uuid.uuid4().hex}{CONTENT_TYPE_EXTENSIONS.get(content_type, '')}"


def bucket_name_and_key_to_http_url(region: str, bucket_name: str, bucket_key: str) -> str:
    return f"https://{bucket_name}.s3.{region}.amazonaws.com/{bucket_key}"
