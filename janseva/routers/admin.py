import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from janseva.database.database import get_db
from janseva.schemas.auth import CreateUserRequest
from janseva.schemas.enums import UserRole
from janseva.schemas.user import UserOut
from janseva.utils.auth_provider import LocalAuthProvider
from janseva.utils.exceptions import InvalidRequest
from janseva.utils.security import require_roles

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)

logger = logging.getLogger(__name__)


# ---------------- CREATE USER ----------------
@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: CreateUserRequest, db: Session = Depends(get_db)):
    """Create a confirmed account (citizen, officer or admin) on someone's behalf."""
    if not payload.email and not payload.phone:
        raise InvalidRequest("Missing email or phone")

    logger.info("Creating user %s with role %s", payload.email or payload.phone, payload.role.value)
    user = LocalAuthProvider(db).create_user(
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        role=payload.role,
    )
    logger.info("User created successfully: %s", user.id)
    return user
