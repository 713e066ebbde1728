"""API router for traveller authentication and account management.

Handlers are plain ``def`` functions: FastAPI runs them in its thread pool, so
bcrypt and JWT signing never block the event loop.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ....application.services.account_service import AccountService
from ....core.dependencies import get_account_service
from ....domain.models import Account, TokenPair
from ...api.dependencies import get_current_account
from ...api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
)

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account, _ = account_service.register(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        nationality=payload.nationality,
        date_of_birth=payload.date_of_birth,
    )
    return {
        "success": True,
        "message": "User registered successfully. Please check your email to verify your account.",
        "data": {"user": _summarize_account(account)},
    }


@router.post("/login")
def login(
    payload: LoginRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    result = account_service.login(payload.email, payload.password)
    summary = _summarize_account(result.account)
    summary["preferences"] = result.account.preferences.to_dict()
    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": summary, **_serialize_tokens(result.tokens)},
    }


@router.post("/logout")
def logout(
    account: Account = Depends(get_current_account),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account_service.logout(account.id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
def me(
    account: Account = Depends(get_current_account),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    profile = account_service.get_profile(account.id)
    return {"success": True, "data": {"user": profile.to_public_dict()}}


@router.put("/updatedetails")
def update_details(
    payload: UpdateDetailsRequest,
    account: Account = Depends(get_current_account),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_none=True)
    updated = account_service.update_profile(account.id, changes)
    return {"success": True, "data": {"user": updated.to_public_dict()}}


@router.put("/updatepassword")
def update_password(
    payload: UpdatePasswordRequest,
    account: Account = Depends(get_current_account),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    token = account_service.update_password(account.id, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password updated successfully", "token": token}


@router.post("/forgotpassword")
def forgot_password(
    payload: ForgotPasswordRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account_service.forgot_password(payload.email)
    return {"success": True, "message": "Password reset email sent"}


@router.put("/resetpassword/{reset_token}")
def reset_password(
    reset_token: str,
    payload: ResetPasswordRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    token = account_service.reset_password(reset_token, payload.password)
    return {"success": True, "message": "Password reset successful", "token": token}


@router.get("/verify-email/{token}")
def verify_email(
    token: str,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account_service.verify_email(token)
    return {"success": True, "message": "Email verified successfully"}


@router.post("/resend-verification")
def resend_verification(
    payload: ResendVerificationRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account_service.resend_verification(payload.email)
    # Same answer whether or not the address is registered.
    return {"success": True, "message": "If the email exists, a verification email has been sent."}


@router.post("/refresh")
def refresh(
    payload: RefreshRequest,
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    tokens = account_service.refresh_token(payload.refresh_token)
    return {"success": True, "data": _serialize_tokens(tokens)}


def _summarize_account(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "firstName": account.first_name,
        "lastName": account.last_name,
        "email": account.email,
        "role": account.role.value,
        "isEmailVerified": account.is_email_verified,
    }


def _serialize_tokens(tokens: TokenPair) -> Dict[str, Any]:
    return {"token": tokens.access_token, "refreshToken": tokens.refresh_token, "tokenType": tokens.token_type}
