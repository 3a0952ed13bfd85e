import logging
import typing
from decimal import Decimal

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ValidationError

from berkeleyfind_backend.models.user_models import UserBasicInfoModel, UserModel, UserStatus
from berkeleyfind_backend.utils.base_types import UserId

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

BASIC_INFO_ATTRIBUTES = list(UserBasicInfoModel.model_fields)


def _to_dynamodb_value(value: typing.Any) -> typing.Any:
    """boto3 rejects floats; nested numbers are stored as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamodb_value(v) for v in value]
    return value


class UserTable:
    """
    Data Abstraction Layer for interacting with the User DynamoDB table.
    Holds profile fields, the profile image reference, courses, study preferences/times
    and the user's onboarding status.

    Table Schema:
      - PK: userId
    """

    def __init__(self, table_name: str) -> None:
        self.client = boto3.resource("dynamodb")
        self.table = self.client.Table(table_name)

    def get_user(self, user_id: UserId) -> typing.Optional[UserModel]:
        """
        Retrieves a full user record.

        :param user_id: The ID of the user.
        :return: UserModel instance if found, else None.
        :raises ClientError: If the table can't be read.
        """
        _LOGGER.debug(f"Fetching user for user_id: {user_id}")
        try:
            response = self.table.get_item(Key={"userId": user_id})
        except ClientError as e:
            _LOGGER.error(f"Failed to get user {user_id}: {e.response['Error']['Message']}")
            raise

        item_data = response.get("Item")
        if not item_data:
            _LOGGER.debug(f"No user found for user_id: {user_id}")
            return None

        try:
            return UserModel.model_validate(item_data)
        except ValidationError as ve:
            _LOGGER.error(f"Failed to validate user data for user_id {user_id}: {ve}", exc_info=True)
            return None

    def get_basic_info(self, user_id: UserId) -> typing.Optional[UserBasicInfoModel]:
        """
        Retrieves only the basic-info attributes (profile fields and image reference) of a user.

        :param user_id: The ID of the user.
        :return: UserBasicInfoModel instance if found, else None.
        :raises ClientError: If the table can't be read.
        """
        _LOGGER.debug(f"Fetching basic info for user_id: {user_id}")
        names = {f"#{attr}": attr for attr in BASIC_INFO_ATTRIBUTES}
        try:
            response = self.table.get_item(
                Key={"userId": user_id},
                ProjectionExpression=", ".join(names),
                ExpressionAttributeNames=names,
            )
        except ClientError as e:
            _LOGGER.error(f"Failed to get basic info for user {user_id}: {e.response['Error']['Message']}")
            raise

        item_data = response.get("Item")
        if not item_data:
            _LOGGER.debug(f"No user found for user_id: {user_id}")
            return None

        try:
            return UserBasicInfoModel.model_validate(item_data)
        except ValidationError as ve:
            _LOGGER.error(f"Failed to validate basic info for user_id {user_id}: {ve}", exc_info=True)
            return None

    def update_user(
        self,
        user_id: UserId,
        update: BaseModel,
        expected_status: typing.Optional[UserStatus] = None,
    ) -> bool:
        """
        Applies a partial update to an existing user as a single atomic write.
        Only fields explicitly set on the update model are written; a field set to None is stored as null.

        :param user_id: The ID of the user.
        :param update: One of the partial-update models from user_models.
        :param expected_status: If given, the write only applies while the stored status still equals it.
        :return: True if a write was issued, False if there was nothing to write.
        :raises ClientError: On storage failure, a missing user, or a status that moved on
            (ConditionalCheckFailedException).
        """
        fields = update.model_dump(mode="json", exclude_unset=True)
        if not fields:
            _LOGGER.warning(f"No fields provided to update for user_id {user_id}")
            return False

        update_parts = []
        expression_attribute_names = {}
        expression_attribute_values = {}
        for name, value in fields.items():
            update_parts.append(f"#{name} = :{name}")
            expression_attribute_names[f"#{name}"] = name
            expression_attribute_values[f":{name}"] = _to_dynamodb_value(value)

        condition = "attribute_exists(userId)"
        if expected_status is not None:
            expression_attribute_names["#currentStatus"] = "userStatus"
            expression_attribute_values[":expectedStatus"] = expected_status.value
            status_check = "#currentStatus = :expectedStatus"
            if expected_status == UserStatus.STARTPROFILE:
                # Records written before the status attribute existed are implicitly at the first step
                status_check = f"(attribute_not_exists(#currentStatus) OR {status_check})"
            condition = f"{condition} AND {status_check}"

        _LOGGER.info(f"Updating user {user_id} fields: {sorted(fields)}")
        try:
            self.table.update_item(
                Key={"userId": user_id},
                UpdateExpression="SET " + ", ".join(update_parts),
                ConditionExpression=condition,
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=expression_attribute_values,
            )
        except ClientError as e:
            _LOGGER.error(
                f"Error updating user {user_id}: {e.response['Error']['Message']}",
                exc_info=True,
            )
            raise

        _LOGGER.info(f"Successfully updated user {user_id}")
        return True

    def put_user(self, user: UserModel) -> None:
        """
        Writes a full user record, replacing any existing one. Used when a user signs up.

        :raises ClientError: On storage failure.
        """
        item = _to_dynamodb_value(user.model_dump(mode="json", exclude_none=True))
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            _LOGGER.error(f"Error creating user {user.userId}: {e.response['Error']['Message']}", exc_info=True)
            raise
