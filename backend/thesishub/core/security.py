from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
import secrets

from thesishub.core.config import settings
from thesishub.core.exceptions import AuthenticationError, ValidationError

CLEAR_ALL_TOKEN_TYPE = "clear_all_confirm"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    if not plain_password or not hashed_password:
        return False
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash (legacy plaintext): never matches
        return False


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def is_password_hash(value: str) -> bool:
    """True when value already looks like a bcrypt hash"""
    return bool(value) and value.startswith(("$2a$", "$2b$", "$2y$")) and len(value) == 60


def create_access_token(subject: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token for a student, teacher or admin"""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": subject,
        "role": role,
        "type": "access",
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Could not validate credentials")


def create_clear_all_token(admin_username: str) -> str:
    """
    First step of the destructive clear-all operation.

    The token is bound to the admin who asked for it and expires after
    CLEAR_ALL_CONFIRM_MINUTES.
    """
    to_encode = {
        "sub": admin_username,
        "type": CLEAR_ALL_TOKEN_TYPE,
        "nonce": secrets.token_urlsafe(8),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.CLEAR_ALL_CONFIRM_MINUTES),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_clear_all_token(token: str, admin_username: str) -> None:
    """Second step: raises ValidationError unless token confirms a clear-all for this admin"""
    if not token:
        raise ValidationError("A confirmation token is required to clear all data", field="confirm_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise ValidationError("Confirmation token is invalid or expired", field="confirm_token")

    if payload.get("type") != CLEAR_ALL_TOKEN_TYPE or payload.get("sub") != admin_username:
        raise ValidationError("Confirmation token does not match this operation", field="confirm_token")
