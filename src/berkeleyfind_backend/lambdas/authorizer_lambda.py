import logging
import typing

from berkeleyfind_backend.cloudwatch.metrics import MetricsManager
from berkeleyfind_backend.dynamodb.secrets_table import SecretsTable
from berkeleyfind_backend.utils.aws_env_vars import get_secrets_table_name
from berkeleyfind_backend.utils.jwt_utils import JwtWrapper

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


def _simple_response(is_authorized: bool, context: typing.Optional[dict] = None) -> dict:
    """
    HTTP API Lambda authorizer "simple response". The context ends up in the downstream
    event at requestContext.authorizer.lambda.
    """
    return {"isAuthorized": is_authorized, "context": context or {}}


class AuthorizerLambda:
    def __init__(
        self,
        jwt_wrapper: JwtWrapper,
        secrets_table: SecretsTable,
        metrics_manager: MetricsManager,
    ) -> None:
        self.jwt_wrapper = jwt_wrapper
        self.secrets_table = secrets_table
        self.metrics_manager = metrics_manager

    def handle(self, event: dict) -> dict:
        try:
            scheme, token = (event.get("headers") or {})["authorization"].split(" ", 1)
        except (KeyError, ValueError):
            _LOGGER.warning("Authorization token missing or malformed.")
            self.metrics_manager.put_metric("AuthorizationFailure", 1)
            return _simple_response(False)

        if scheme.lower() != "bearer":
            _LOGGER.warning(f"Unsupported authorization scheme: {scheme}")
            self.metrics_manager.put_metric("AuthorizationFailure", 1)
            return _simple_response(False)

        try:
            payload = self.jwt_wrapper.verify_token(token, self.secrets_table)
        except Exception as e:
            _LOGGER.error(f"Error during token validation: {e}", exc_info=True)
            self.metrics_manager.put_metric("AuthorizationFailure", 1)
            return _simple_response(False)

        if not payload or "sub" not in payload:
            _LOGGER.warning("Token is invalid or expired.")
            self.metrics_manager.put_metric("AuthorizationFailure", 1)
            return _simple_response(False)

        _LOGGER.info(f"Token validated successfully for user: {payload['sub']}")
        self.metrics_manager.put_metric("AuthorizationSuccess", 1)
        return _simple_response(True, {"sub": str(payload["sub"])})


def authorizer_lambda_handler(event: dict, context: typing.Any) -> dict:
    """
    Lambda Authorizer for the HTTP API. Validates the access token in the Authorization header.
    """
    _LOGGER.info("Authorizer lambda handler invoked.")
    metrics_manager = MetricsManager("BerkeleyFind/Authorization")

    try:
        handler = AuthorizerLambda(
            jwt_wrapper=JwtWrapper(),
            secrets_table=SecretsTable(get_secrets_table_name()),
            metrics_manager=metrics_manager,
        )
        return handler.handle(event)
    except Exception as e:
        _LOGGER.critical(f"Critical error in authorizer_lambda_handler: {e}", exc_info=True)
        return _simple_response(False)
    finally:
        metrics_manager.flush()
