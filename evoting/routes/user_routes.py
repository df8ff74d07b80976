from fastapi import APIRouter, Depends

from evoting import crud
from evoting.database.connection import get_storage
from evoting.dependencies import get_current_user
from evoting.schemas import (
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
    UserCreate,
    VerifyAadharRequest,
)

router = APIRouter(prefix="/user", tags=["User"])


@router.post("/signup")
def signup(data: UserCreate, storage=Depends(get_storage)):
    return crud.signup(storage, data)


@router.post("/login")
def login(data: LoginRequest, storage=Depends(get_storage)):
    return crud.login(storage, data.aadharCardNumber, data.password)


@router.get("/profile")
def profile(user=Depends(get_current_user)):
    return crud.get_profile(user)


@router.put("/profile/password")
def change_password(data: PasswordChangeRequest, user=Depends(get_current_user), storage=Depends(get_storage)):
    return crud.change_password(storage, user, data.currentPassword, data.newPassword)


@router.post("/forgot-password/verify-aadhar")
def verify_aadhar(data: VerifyAadharRequest, storage=Depends(get_storage)):
    return crud.verify_identity(storage, data.aadharCardNumber)


@router.post("/forgot-password/reset")
def reset_password(data: PasswordResetRequest, storage=Depends(get_storage)):
    """
    Sets a new password for the account. The OTP step-up happens in the
    client before this call; the server does not re-check it.
    """
    return crud.reset_password(storage, data.aadharCardNumber, data.newPassword)
