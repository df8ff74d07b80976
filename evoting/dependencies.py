from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from evoting.database.connection import get_storage
from evoting.errors import AuthError, ForbiddenError
from evoting.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage=Depends(get_storage),
) -> Dict[str, Any]:
    """Resolve the bearer token to the stored account or fail with 401."""
    if credentials is None:
        raise AuthError("Token not found")
    user = storage.find_user(decode_access_token(credentials.credentials))
    if user is None:
        raise AuthError("User not found")
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise ForbiddenError("User does not have admin role")
    return user
