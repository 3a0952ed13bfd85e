import os

DEFAULT_PROFILE_IMAGE_FOLDER = "berkeleyfind"


def _get_resource_by_env_var(env_var: str) -> str:
    resource_name = os.environ.get(env_var)
    if not resource_name:
        raise ValueError(f"Missing environment variable: {env_var}")
    return resource_name


def get_aws_region() -> str:
    return _get_resource_by_env_var("AWS_REGION")


def get_user_table_name() -> str:
    return _get_resource_by_env_var("USER_TABLE_NAME")


def get_secrets_table_name() -> str:
    return _get_resource_by_env_var("SECRETS_TABLE_NAME")


def get_profile_image_bucket_name() -> str:
    return _get_resource_by_env_var("PROFILE_IMAGE_BUCKET_NAME")


def get_profile_image_folder() -> str:
    """
    Folder (key prefix) uploaded profile images are stored under.
    Defaults to "berkeleyfind" if not set.
    """
    return os.environ.get("PROFILE_IMAGE_FOLDER") or DEFAULT_PROFILE_IMAGE_FOLDER
