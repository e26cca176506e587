from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from janseva.schemas.enums import OTPChannel, VerifyMode

# ------------------ SEND OTP ------------------
class SendOTPRequest(BaseModel):
    # Optional so a missing field yields the documented 400 instead of a 422
    identifier: Optional[str] = None
    type: Optional[OTPChannel] = None


class SendOTPResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    expires_in: int = Field(..., alias="expiresIn")


# ------------------ VERIFY OTP ------------------
class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identifier: Optional[str] = None
    otp: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    mode: VerifyMode = VerifyMode.LOGIN


class VerifyOTPResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    identifier: str
    type: OTPChannel
    can_login: bool = Field(True, alias="canLogin")
    can_bridge_login: bool = Field(False, alias="canBridgeLogin")
    user_exists: bool = Field(False, alias="userExists")
    login_identifier: Optional[str] = Field(None, alias="loginIdentifier")
