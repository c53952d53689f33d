"""
Account endpoints (signup, verification, sign-in, password reset).

Riders and drivers get the same routes under different prefixes; one factory
builds both routers around an :class:`AccountService` for the kind.
"""

from __future__ import annotations

from fastapi import APIRouter

from trajet_api.schemas import (
    EmailRequest,
    MessageResponse,
    ResendResponse,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    SignupRequest,
    SignupResponse,
    VerifyEmailRequest,
)
from trajet_api.services.account_service import DRIVER, RIDER, AccountService, PrincipalKind


def build_auth_router(kind: PrincipalKind, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[f"auth-{kind.name}"])
    service = AccountService(kind)

    @router.post("/signup", status_code=201, response_model=SignupResponse)
    def signup(body: SignupRequest):
        result = service.signup(body.username, body.email, body.password, body.phone_number, body.roles)
        if result.email_sent:
            message = "User registered successfully! Please check your email for verification code."
        else:
            message = "User registered, but the verification email could not be sent. Please request a new code."
        return SignupResponse(message=message, user_id=result.principal_id, email_sent=result.email_sent)

    @router.post("/signin", response_model=SignInResponse)
    def signin(body: SignInRequest):
        result = service.sign_in(body.email, body.password, body.fcm_token)
        return SignInResponse(
            id=result.id,
            username=result.username,
            email=result.email,
            roles=result.roles,
            access_token=result.access_token,
        )

    @router.post("/verify-email", response_model=MessageResponse)
    def verify_email(body: VerifyEmailRequest):
        service.verify_email(body.user_id, body.verification_code)
        return MessageResponse(message="Email verified successfully")

    @router.post("/resend-verification", response_model=ResendResponse)
    def resend_verification(body: EmailRequest):
        principal_id = service.resend_verification(body.email)
        return ResendResponse(
            message="Verification code resent successfully! Please check your email.",
            user_id=principal_id,
        )

    @router.post("/forgot-password", response_model=MessageResponse)
    def forgot_password(body: EmailRequest):
        service.forgot_password(body.email)
        return MessageResponse(message="Password reset email sent")

    @router.post("/reset-password/{token}", response_model=MessageResponse)
    def reset_password(token: str, body: ResetPasswordRequest):
        service.reset_password(token, body.password)
        return MessageResponse(message="Password reset successful")

    @router.get("/validate-reset-token/{token}", response_model=MessageResponse)
    def validate_reset_token(token: str):
        service.validate_reset_token(token)
        return MessageResponse(message="Token is valid")

    return router


router = build_auth_router(RIDER, "/api/auth")
driver_router = build_auth_router(DRIVER, "/api/auth/driver")
