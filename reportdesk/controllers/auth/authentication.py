from typing import Optional

from flask_openapi3 import APIBlueprint, Tag
from flask_jwt_extended import (
    jwt_required, get_jwt, get_jwt_identity,
    set_access_cookies, set_refresh_cookies, unset_jwt_cookies,
)
from pydantic import BaseModel, EmailStr, Field, field_validator

from ...addons.auth import login_required, current_user
from ...addons.functions import jsonifyFormat, parse_body
from ...addons.services import get_services

auth_tag = Tag(name="Auth", description="Authentication & account self-service")
auth_bp = APIBlueprint(
    'auth', __name__, url_prefix='/api/auth', abp_tags=[auth_tag]
)

RESET_MESSAGE = "If this email exists, a reset link will be sent"


# ---------------------- SCHEMAS ---------------------- #
class LoginSchema(BaseModel):
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")

    @field_validator('email')
    @classmethod
    def email_to_lowercase(cls, v):
        return v.strip().lower() if v else v


class ResetPasswordSchema(BaseModel):
    email: EmailStr = Field(..., description="Email address for password reset")


class ConfirmSchema(BaseModel):
    token: str = Field(..., min_length=1, description="Invitation or recovery token")
    password: str = Field(..., description="New password (min 8 chars)")


class UpdatePasswordSchema(BaseModel):
    password: str = Field(..., description="New password (min 8 chars)")


class UpdateProfileSchema(BaseModel):
    fullName: Optional[str] = Field(None, description="Full name")
    phone: Optional[str] = Field(None, description="Phone number")


def _session_response(user, tokens, message):
    resp = jsonifyFormat({
        "success": True,
        "message": message,
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "user": user.to_dict(),
    }, 200)
    set_access_cookies(resp, tokens["access_token"])
    set_refresh_cookies(resp, tokens["refresh_token"])
    return resp


# ---------------------- LOGIN ---------------------- #
@auth_bp.post('/login')
def login(body: LoginSchema):
    """User login
    Authenticates the credentials, sets the session cookies and returns the tokens.
    """
    user, tokens = get_services().identity.sign_in_with_password(body.email, body.password)
    return _session_response(user, tokens, "Signed in")


# ---------------------- REFRESH TOKEN ---------------------- #
@auth_bp.post('/refresh', security=[{"jwt": []}, {"cookie": []}])
@jwt_required(refresh=True)
def refresh_token():
    """Rotate access and refresh tokens using a valid refresh token."""
    user, tokens = get_services().identity.refresh(get_jwt_identity(), get_jwt()["jti"])
    return _session_response(user, tokens, "Session refreshed")


# ---------------------- LOGOUT ---------------------- #
@auth_bp.post('/logout', security=[{"jwt": []}, {"cookie": []}])
@login_required()
def logout():
    """Revoke the current token and clear the session cookies"""
    get_services().identity.sign_out(get_jwt()["jti"])
    resp = jsonifyFormat({"success": True, "message": "Successfully logged out"}, 200)
    unset_jwt_cookies(resp)
    return resp


# ---------------------- RESET PASSWORD ---------------------- #
@auth_bp.post('/reset-password')
def reset_password(body: ResetPasswordSchema):
    """Password reset request
    Always answers with the same message; an e-mail is sent when the account exists.
    """
    get_services().identity.reset_password_for_email(body.email)
    return jsonifyFormat({"success": True, "message": RESET_MESSAGE}, 200)


# ---------------------- CONFIRM (INVITE / RECOVERY) ---------------------- #
@auth_bp.post('/confirm')
def confirm(body: ConfirmSchema):
    """Set a password from an invitation or recovery token"""
    user = get_services().identity.confirm(body.token, body.password)
    return jsonifyFormat({"success": True, "message": "Password set successfully", "user": user.to_dict()}, 200)


# ---------------------- PROFILE ---------------------- #
@auth_bp.get('/profile', security=[{"jwt": []}, {"cookie": []}])
@login_required()
def get_profile():
    """Get current user profile"""
    return jsonifyFormat({"success": True, "user": current_user().to_dict()}, 200)


@auth_bp.post('/profile', security=[{"jwt": []}, {"cookie": []}])
@login_required()
def update_profile():
    """Update the caller's name and phone number"""
    body = parse_body(UpdateProfileSchema)
    user = get_services().identity.update_user(current_user(), full_name=body.fullName, phone=body.phone)
    return jsonifyFormat({"success": True, "message": "Profile updated", "user": user.to_dict()}, 200)


@auth_bp.post('/update-password', security=[{"jwt": []}, {"cookie": []}])
@login_required()
def update_password():
    """Change the caller's password"""
    body = parse_body(UpdatePasswordSchema)
    get_services().identity.update_user(current_user(), password=body.password)
    return jsonifyFormat({"success": True, "message": "Password updated"}, 200)
