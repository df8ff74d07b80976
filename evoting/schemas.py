from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    # ID and mobile numbers arrive as JSON numbers from some forms
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1)
    age: int
    email: Optional[EmailStr] = None
    mobile: str
    address: str = Field(..., min_length=1)
    aadharCardNumber: str


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)
    role: Literal["voter", "admin"] = "voter"


class UserOut(UserBase):
    id: str = Field(alias="_id")
    role: str
    isVoted: bool

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)


class LoginRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    aadharCardNumber: Optional[str] = None
    password: Optional[str] = None


class PasswordChangeRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class VerifyAadharRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    aadharCardNumber: Optional[str] = None


class PasswordResetRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    aadharCardNumber: Optional[str] = None
    newPassword: Optional[str] = None
