from datetime import datetime
from pydantic import BaseModel
from typing import Optional
from janseva.schemas.enums import UserRole

# ------------------ USER OUTPUT ------------------
class UserOut(BaseModel):
    id: int
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.CITIZEN
    email_confirmed: bool = False
    phone_confirmed: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
