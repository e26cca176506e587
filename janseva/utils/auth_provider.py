import logging
import secrets
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from janseva.crud import crud
from janseva.models.models import User
from janseva.schemas.enums import OTPChannel, UserRole
from janseva.utils.exceptions import AuthProviderError, InvalidRequest
from janseva.utils.normalisation import digits_only, ghost_email_for, guess_channel
from janseva.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class LocalAuthProvider:
    """
    Account store backing password sign-in. The OTP verifier only needs
    find_user_by_phone / set_user_password / create_phone_user.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_user_by_phone(self, phone: str) -> Optional[User]:
        return crud.get_user_by_phone(self.db, phone)

    def find_user(self, identifier: str) -> Optional[User]:
        if guess_channel(identifier) == OTPChannel.EMAIL:
            return crud.get_user_by_email(self.db, identifier)
        return self.find_user_by_phone(identifier)

    def set_user_password(self, user: User, password: str) -> User:
        try:
            return crud.update_user_password(
                self.db, user, get_password_hash(password), phone_confirmed=True
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to update password for user %s", user.id)
            raise AuthProviderError(str(e))

    def create_phone_user(self, phone: str, password: str, full_name: Optional[str] = None) -> User:
        """Register a phone-only citizen under the ghost email for that number."""
        try:
            return crud.create_user(
                self.db,
                hashed_password=get_password_hash(password),
                full_name=full_name or "User",
                email=ghost_email_for(phone),
                phone=f"+{digits_only(phone)}",
                role=UserRole.CITIZEN,
                email_confirmed=True,
                phone_confirmed=True,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Registration failed for phone account")
            raise AuthProviderError(str(e))

    def create_user(
        self,
        full_name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        password: Optional[str] = None,
        role: UserRole = UserRole.CITIZEN,
    ) -> User:
        """Admin-side account creation; accounts are created pre-confirmed."""
        if email and crud.get_user_by_email(self.db, email):
            raise InvalidRequest("A user with this email address has already been registered")
        if phone and crud.get_user_by_phone(self.db, phone):
            raise InvalidRequest("A user with this phone number has already been registered")
        return crud.create_user(
            self.db,
            hashed_password=get_password_hash(password or secrets.token_urlsafe(12)),
            full_name=full_name,
            email=email,
            phone=f"+{digits_only(phone)}" if phone else None,
            role=role,
            email_confirmed=bool(email),
            phone_confirmed=bool(phone),
        )

    def authenticate(self, identifier: str, password: str) -> Optional[User]:
        user = self.find_user(identifier)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user
