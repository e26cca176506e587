# janseva/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from janseva.database.database import get_db
from janseva.models.models import User
from janseva.schemas import auth as auth_schemas
from janseva.schemas import tokens as token_schemas
from janseva.schemas.user import UserOut
from janseva.utils import security
from janseva.utils.auth_provider import LocalAuthProvider
from janseva.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# ---------------- LOGIN ----------------
@router.post("/login", response_model=token_schemas.Token)
def login(request: auth_schemas.LoginRequest, db: Session = Depends(get_db)):
    """
    Password sign-in with an email address or phone number.
    Phone users sign in with the OTP they just verified.
    """
    user = LocalAuthProvider(db).authenticate(request.identifier, request.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = security.create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    logger.info("User %s signed in", user.id)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": security.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


# ---------------- CURRENT USER ----------------
@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
