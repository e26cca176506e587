from pydantic import BaseModel, EmailStr
from typing import Optional
from janseva.schemas.enums import UserRole

# ---------------- LOGIN ----------------
class LoginRequest(BaseModel):
    identifier: str  # email address or phone number
    password: str


# ---------------- ADMIN CREATE USER ----------------
class CreateUserRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = None  # random password when omitted
    full_name: str
    role: UserRole = UserRole.CITIZEN
