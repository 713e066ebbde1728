"""Pydantic schemas for authentication endpoints."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CamelModel(BaseModel):
    """Accepts the camelCase field names used by the web client."""

    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    first_name: str = Field(alias="firstName", min_length=1, max_length=50)
    last_name: str = Field(alias="lastName", min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: Optional[str] = None
    nationality: Optional[str] = None
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class BudgetPayload(BaseModel):
    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)


class EmergencyContactPayload(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class UpdateDetailsRequest(CamelModel):
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=50)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")
    language: Optional[str] = None
    currency: Optional[str] = None
    interests: Optional[List[str]] = None
    budget: Optional[BudgetPayload] = None
    emergency_contact: Optional[EmergencyContactPayload] = Field(default=None, alias="emergencyContact")


class UpdatePasswordRequest(CamelModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword", min_length=6)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6)


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
