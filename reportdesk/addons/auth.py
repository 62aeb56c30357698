"""Session verification and role gating shared by every blueprint."""
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from .extensions import db
from .errors import Unauthenticated, Forbidden
from .functions import jsonifyFormat
from ..models import User, TokenBlacklist, ROLES

logger = logging.getLogger(__name__)


def verify_session(locations=None):
    """Resolve the request credentials to an active user row.

    ``locations`` restricts where the token may come from (``cookies``,
    ``headers``); by default every configured location is accepted.
    """
    verify_jwt_in_request(locations=locations)
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        raise Unauthenticated('Invalid session')

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise Unauthenticated('User not found or inactive')
    return user


def require_role(user, allowed):
    """Role gate, evaluated against the stored role on every request."""
    if not user.is_active:
        raise Unauthenticated('User not found or inactive')
    if user.role not in allowed:
        logger.warning(f"User {user.id} with role '{user.role}' denied; requires one of {list(allowed)}")
        raise Forbidden('Admin access required' if tuple(allowed) == ('admin',) else 'Access denied')
    return user


def role_required(*roles, locations=None):
    """Decorator: authenticate the caller and require one of ``roles``.

    With no roles any active user passes. The resolved user is stored on
    ``flask.g.current_user``.
    """
    allowed = roles or ROLES

    def wrapper(fn):
        @wraps(fn)
        def decorator(*args, **kwargs):
            user = verify_session(locations)
            g.current_user = require_role(user, allowed)
            return fn(*args, **kwargs)
        return decorator
    return wrapper


login_required = role_required


def current_user():
    return g.current_user


def _unauthorized(message):
    return jsonifyFormat({'success': False, 'message': message}, 401)


def register_jwt_callbacks(jwt_manager):
    """Map flask-jwt-extended failures onto the common 401 envelope."""

    @jwt_manager.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        jti = jwt_payload.get("jti")
        if jti and TokenBlacklist.is_revoked(jti):
            logger.info(f"Token with jti {jti} is blacklisted")
            return True

        try:
            user = db.session.get(User, int(jwt_payload.get("sub")))
        except (TypeError, ValueError):
            return True
        if user and user.sessions_revoked_at and "iat" in jwt_payload:
            issued_at = datetime.fromtimestamp(jwt_payload["iat"], timezone.utc).replace(tzinfo=None)
            if issued_at < user.sessions_revoked_at:
                logger.info(f"Token for user {user.id} issued before global sign-out")
                return True
        return False

    @jwt_manager.unauthorized_loader
    def missing_token(reason):
        return _unauthorized('Authentication required')

    @jwt_manager.invalid_token_loader
    def invalid_token(reason):
        return _unauthorized('Invalid session')

    @jwt_manager.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _unauthorized('Session expired')

    @jwt_manager.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return _unauthorized('Session revoked')

    @jwt_manager.needs_fresh_token_loader
    def stale_token(jwt_header, jwt_payload):
        return _unauthorized('Fresh session required')

    @jwt_manager.user_lookup_error_loader
    def unknown_user(jwt_header, jwt_payload):
        return _unauthorized('User not found or inactive')
