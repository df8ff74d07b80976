import re
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from evoting.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, BCRYPT_ROUNDS, SECRET_KEY
from evoting.errors import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# Hash a password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# Verify a plain password against a hash
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# Create JWT access token
def create_access_token(data: dict, expires_delta: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


# Decode a JWT and return the account id it was issued for
def decode_access_token(token: str) -> str:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Invalid or expired token")
    subject = payload.get("sub")
    if not subject:
        raise AuthError("Invalid token")
    return subject


def mask_mobile(mobile: str) -> str:
    """Keep the first 2 and last 4 digits, e.g. 9876543210 -> 98****3210."""
    if not re.fullmatch(r"[0-9]{10}", mobile or ""):
        return mobile
    return f"{mobile[:2]}****{mobile[6:]}"
