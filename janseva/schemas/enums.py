from enum import Enum

# ------------------ OTP CHANNEL ------------------
class OTPChannel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"

# ------------------ VERIFY MODE ------------------
class VerifyMode(str, Enum):
    LOGIN = "login"
    REGISTER = "register"

# ------------------ USER ROLES ------------------
class UserRole(str, Enum):
    CITIZEN = "citizen"
    OFFICER = "officer"
    ADMIN = "admin"
