"""
Pytest configuration and fixtures for all tests.

This file contains fixtures that are automatically available to all test files.
"""

import os
import typing

import pytest


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """
    Sets up environment variables required for all tests.

    Session scoped and autouse: the application reads these at runtime through
    berkeleyfind_backend.utils.aws_env_vars.
    """
    os.environ["AWS_REGION"] = "us-west-1"

    os.environ["USER_TABLE_NAME"] = "test-user-table"
    os.environ["SECRETS_TABLE_NAME"] = "test-secrets-table"

    os.environ["PROFILE_IMAGE_BUCKET_NAME"] = "test-profile-image-bucket"
    os.environ["PROFILE_IMAGE_FOLDER"] = "berkeleyfind"

    yield


@pytest.fixture(scope="function")
def aws_credentials() -> typing.Iterator[None]:
    """
    Mocks AWS credentials for moto.

    Used by the DynamoDB and S3 tests that run inside moto's mock_aws context manager.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-west-1"
    yield
    del os.environ["AWS_ACCESS_KEY_ID"]
    del os.environ["AWS_SECRET_ACCESS_KEY"]
    del os.environ["AWS_SECURITY_TOKEN"]
    del os.environ["AWS_SESSION_TOKEN"]
    del os.environ["AWS_DEFAULT_REGION"]
