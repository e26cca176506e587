import logging
from datetime import timedelta
from typing import Callable

from passlib.context import CryptContext
from jose import jwt, JWTError
from fastapi import HTTPException, status, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from janseva.database.database import get_db
from janseva.crud import crud
from janseva.schemas.enums import UserRole
from janseva.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from janseva.utils.normalisation import utcnow

logger = logging.getLogger("security")

# ---------- Password Hashing ----------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a plain password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        # Malformed hash; treat as a failed login rather than a 500
        logger.warning("Password verification failed: %s", exc)
        return False


# ---------- Token Management ----------
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = utcnow() + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire, "iat": utcnow()})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode a JWT access token. Raises 401 if invalid/expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid or expired access token")


# ---------- FastAPI Dependencies ----------
def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    """Extract the current user from an access token."""
    payload = decode_access_token(token)
    sub = payload.get("sub")

    if not sub or not str(sub).isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid token payload")

    user = crud.get_user(db, int(sub))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    token_role = payload.get("role")
    if token_role and token_role != user.role.value:
        logger.warning("Token role (%s) differs from DB role (%s) for user %s", token_role, user.role.value, user.id)

    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    FastAPI dependency to enforce user roles.

    Usage:
        Depends(require_roles(UserRole.ADMIN))
    """
    allowed = {r.value for r in roles}

    def _enforcer(user=Depends(get_current_user)):
        # If no allowed roles were provided, allow anyone
        if allowed and user.role.value not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail="Insufficient permissions")
        return user
    return _enforcer
