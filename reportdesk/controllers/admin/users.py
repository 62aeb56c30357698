# controllers/admin/users.py
from typing import Optional

from flask import request
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field, field_validator

from ...addons.auth import role_required, current_user
from ...addons.functions import jsonifyFormat, parse_body
from ...addons.services import get_services

admin_tag = Tag(name="Admin", description="User provisioning and administration")
admin_bp = APIBlueprint(
    'admin', __name__, url_prefix='/api/admin', abp_tags=[admin_tag],
    abp_security=[{"jwt": []}, {"cookie": []}],
)


# ---------------------- SCHEMAS ---------------------- #
class CreateUserSchema(BaseModel):
    email: str = Field(..., min_length=3, description="User's email address")
    role: str = Field(..., description="admin, manager or user")
    fullName: Optional[str] = Field(None, description="User's full name")
    phone: Optional[str] = Field(None, description="User's phone number")

    @field_validator('email')
    @classmethod
    def email_to_lowercase(cls, v):
        return v.strip().lower() if v else v


class UserIdSchema(BaseModel):
    userId: int = Field(..., description="User ID")


# ---------------------- LIST USERS ---------------------- #
@admin_bp.get('/users/index', security=[{"jwt": []}])
@role_required('admin', locations=['headers'])
def list_users():
    """List users, filterable by role and status (bearer token only)"""
    users = get_services().identity.list_users(
        role=request.args.get('role'),
        status=request.args.get('status'),
    )
    return jsonifyFormat({'success': True, 'users': [u.to_dict() for u in users]}, 200)


# ---------------------- CREATE USER ---------------------- #
@admin_bp.post('/createUser')
@role_required('admin')
def create_user():
    """Create a user account and e-mail an invitation"""
    body = parse_body(CreateUserSchema)
    user = get_services().identity.create_user(
        body.email,
        body.role,
        created_by=current_user().id,
        full_name=body.fullName,
        phone=body.phone,
    )
    return jsonifyFormat({
        'success': True,
        'message': 'User created successfully. An invitation email has been sent.',
        'userId': user.id,
    }, 201)


# ---------------------- DEACTIVATE / REACTIVATE ---------------------- #
@admin_bp.post('/users/deactivate')
@role_required('admin')
def deactivate_user():
    """Deactivate a user and revoke all of their sessions"""
    body = parse_body(UserIdSchema)
    user = get_services().identity.set_active(body.userId, False)
    return jsonifyFormat({'success': True, 'message': 'User deactivated', 'user': user.to_dict()}, 200)


@admin_bp.post('/users/reactivate')
@role_required('admin')
def reactivate_user():
    """Reactivate a previously deactivated user"""
    body = parse_body(UserIdSchema)
    user = get_services().identity.set_active(body.userId, True)
    return jsonifyFormat({'success': True, 'message': 'User reactivated', 'user': user.to_dict()}, 200)
