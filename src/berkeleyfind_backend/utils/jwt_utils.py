import jwt

from berkeleyfind_backend.dynamodb.secrets_table import SecretsTable

JWT_ALGORITHM = "HS256"


class JwtWrapper:
    def __init__(self) -> None:
        pass

    def verify_token(self, token: str, secrets_table: SecretsTable) -> dict | None:
        try:
            jwt_secret = secrets_table.get_jwt_secret_key()
            return jwt.decode(token, jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError:
            return None
        except KeyError:
            return None
