import logging
import re
from typing import Any, Dict, Optional

from evoting.config import AADHAR_LENGTH, MIN_PASSWORD_LENGTH, MIN_VOTER_AGE, MOBILE_LENGTH
from evoting.database.connection import serialize
from evoting.errors import AuthError, ConflictError, NotFoundError, ValidationError
from evoting.schemas import UserCreate, UserOut
from evoting.security import create_access_token, hash_password, mask_mobile, verify_password

logger = logging.getLogger(__name__)

AADHAR_RE = re.compile(rf"[0-9]{{{AADHAR_LENGTH}}}")
MOBILE_RE = re.compile(rf"[0-9]{{{MOBILE_LENGTH}}}")


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Account as returned to clients, without the password hash."""
    return UserOut.model_validate(serialize(user)).model_dump(by_alias=True)


def issue_token(user: Dict[str, Any]) -> str:
    return create_access_token({"sub": str(user["_id"])})


def _check_aadhar(aadhar: Optional[str], message: str = "Invalid Aadhar Card Number format") -> None:
    if not AADHAR_RE.fullmatch(aadhar or ""):
        raise ValidationError(message)


def _check_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")


def ensure_admin_slot_free(storage, role: str, exclude_id: Optional[str] = None) -> None:
    # The single_admin index is the real guard; this gives the readable error
    if role == "admin" and storage.count_admins(exclude_id=exclude_id) > 0:
        raise ConflictError("Admin user already exists")


# Create a new account with hashed password
def signup(storage, data: UserCreate) -> Dict[str, Any]:
    ensure_admin_slot_free(storage, data.role)

    _check_aadhar(data.aadharCardNumber, f"Aadhar Card Number must be exactly {AADHAR_LENGTH} digits")
    if not MOBILE_RE.fullmatch(data.mobile):
        raise ValidationError(f"Mobile number must be exactly {MOBILE_LENGTH} digits")

    if storage.find_user_by("aadharCardNumber", data.aadharCardNumber):
        raise ConflictError("User with the same Aadhar Card Number already exists")
    if storage.find_user_by("mobile", data.mobile):
        raise ConflictError("User with the same mobile number already exists")
    if data.email and storage.find_user_by("email", data.email):
        raise ConflictError("User with the same email already exists")

    if data.age < MIN_VOTER_AGE:
        raise ValidationError(f"Age must be {MIN_VOTER_AGE} or above to register")

    user = data.model_dump()
    if user["email"] is None:
        del user["email"]
    user["password"] = hash_password(data.password)
    user["isVoted"] = False
    created = storage.insert_user(user)
    logger.info(f"User {created['_id']} signed up as {created['role']}")
    return {"response": public_user(created), "token": issue_token(created)}


# Login with Aadhar Card Number and password
def login(storage, aadhar: Optional[str], password: Optional[str]) -> Dict[str, str]:
    if not aadhar or not password:
        raise ValidationError("Aadhar Card Number and password are required")
    _check_aadhar(aadhar)

    user = storage.find_user_by("aadharCardNumber", aadhar)
    if not user or not verify_password(password, user["password"]):
        logger.warning(f"Failed login for Aadhar ending {aadhar[-4:]}")
        raise AuthError("Invalid Aadhar Card Number or Password")
    return {"token": issue_token(user)}


def get_profile(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"user": public_user(user)}


# Change the password of a logged-in account
def change_password(storage, user: Dict[str, Any], current: Optional[str], new: Optional[str]) -> Dict[str, str]:
    if not current or not new:
        raise ValidationError("Both currentPassword and newPassword are required")
    _check_new_password(new)
    if not verify_password(current, user["password"]):
        raise AuthError("Invalid current password")

    storage.update_user(str(user["_id"]), {"password": hash_password(new)})
    logger.info(f"Password updated for user {user['_id']}")
    return {"message": "Password updated successfully"}


# Forgot password step 1: look up the mobile number the OTP goes to
def verify_identity(storage, aadhar: Optional[str]) -> Dict[str, str]:
    if not aadhar:
        raise ValidationError("Aadhar Card Number is required")
    _check_aadhar(aadhar)

    user = storage.find_user_by("aadharCardNumber", aadhar)
    if not user:
        raise NotFoundError("No account found with this Aadhar Card Number")
    return {
        "message": "Aadhar Card Number verified successfully",
        "mobile": user["mobile"],
        "maskedMobile": mask_mobile(user["mobile"]),
    }


# Forgot password step 2: the caller has already proven the phone via OTP
def reset_password(storage, aadhar: Optional[str], new: Optional[str]) -> Dict[str, str]:
    if not aadhar or not new:
        raise ValidationError("Aadhar Card Number and new password are required")
    _check_aadhar(aadhar)
    _check_new_password(new)

    user = storage.find_user_by("aadharCardNumber", aadhar)
    if not user:
        raise NotFoundError("No account found with this Aadhar Card Number")

    storage.update_user(str(user["_id"]), {"password": hash_password(new)})
    logger.info(f"Password reset for user {user['_id']}")
    return {"message": "Password has been reset successfully. You can now login with your new password."}
