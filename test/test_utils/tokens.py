from datetime import datetime, timedelta, timezone

import jwt


def mint_access_token(user_id: str, secret: str, expires_in: timedelta = timedelta(hours=6)) -> str:
    """Signs an HS256 access token the way the identity provider's login flow does."""
    return jwt.encode({"exp": datetime.now(timezone.utc) + expires_in, "sub": user_id}, secret, algorithm="HS256")
